from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from workbench.models import ApiConfiguration, CamelModel, Namespace


class ApiConfigurationIn(BaseModel):
    id: Optional[int] = None
    name: str = Field(..., min_length=1)
    endpoint: str = ""
    token: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)

    def for_namespace(self, namespace: Namespace) -> Dict[str, Any]:
        """Field dict for Storage.save_config; the endpoint is only optional for Google."""
        if namespace is Namespace.GENERIC and not self.endpoint.strip():
            raise ValueError("endpoint is required")
        return self.model_dump()


class ApiConfigurationList(CamelModel):
    configs: List[ApiConfiguration]
    active_id: Optional[int] = None


class ConnectionTestResult(BaseModel):
    success: bool
    message: str
    response: Optional[Any] = None
    details: Optional[str] = None
