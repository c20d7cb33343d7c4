"""Minimal HCP Terraform / Terraform Enterprise API client.

Only the surface the provisioner needs is implemented: the registry-module
test variables endpoints. Payloads follow the JSON:API document format used
by the TFE API (``{"data": {"type": "vars", "attributes": {...}}}``).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

import requests
from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from tfe_provisioner.core.module_scope import RegistryModuleID

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "https://app.terraform.io"
DEFAULT_BASE_PATH = "/api/v2/"
_JSON_API = "application/vnd.api+json"
PAGE_SIZE = 100


class TFEError(Exception):
    """Raised when a TFE API request fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TFEError):
    """Raised when the requested TFE resource does not exist (HTTP 404)."""


class CategoryType(str, Enum):
    TERRAFORM = "terraform"
    ENV = "env"


class Variable(BaseModel):
    """A variable as returned by the TFE API.

    ``value`` is only meaningful for non-sensitive variables; the API echoes
    an empty or placeholder value for sensitive ones.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    key: str
    value: str = ""
    category: CategoryType
    description: str = ""
    hcl: bool = False
    sensitive: bool = False

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Variable:
        """Build a ``Variable`` from a JSON:API resource object."""
        attrs = data.get("attributes", {})
        return cls(
            id=data["id"],
            key=attrs.get("key", ""),
            value=attrs.get("value") or "",
            category=attrs.get("category", CategoryType.ENV),
            description=attrs.get("description") or "",
            hcl=bool(attrs.get("hcl", False)),
            sensitive=bool(attrs.get("sensitive", False)),
        )


class VariableCreateOptions(BaseModel):
    key: str
    value: str = ""
    category: CategoryType
    description: str = ""
    hcl: bool = False
    sensitive: bool = False


class VariableUpdateOptions(BaseModel):
    """Fields left as ``None`` are omitted from the request (unchanged remotely)."""

    key: str | None = None
    value: str | None = None
    description: str | None = None
    hcl: bool | None = None
    sensitive: bool | None = None


def _vars_document(options: BaseModel, *, variable_id: str | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "type": "vars",
        "attributes": options.model_dump(mode="json", exclude_none=True),
    }
    if variable_id is not None:
        data["id"] = variable_id
    return {"data": data}


def _error_detail(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if not errors:
        return response.text or response.reason
    parts = []
    for err in errors:
        if isinstance(err, dict):
            parts.append(err.get("detail") or err.get("title") or str(err))
        else:
            parts.append(str(err))
    return "; ".join(parts)


class TFEClient:
    """Token-authenticated TFE API client."""

    def __init__(
        self,
        address: str = DEFAULT_ADDRESS,
        *,
        token: str,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.address = address.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.verify = verify_ssl
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": _JSON_API,
                "Accept": _JSON_API,
            }
        )
        self.test_variables = TestVariables(self)

    def url(self, path: str) -> str:
        return f"{self.address}{DEFAULT_BASE_PATH}{path.lstrip('/')}"

    def request(
        self, method: str, path: str, *, json: Any = None, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Send a request and return the decoded JSON body (``None`` when empty)."""
        url = self.url(path)
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method, url, json=json, params=params, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise TFEError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 404:
            raise NotFoundError("resource not found", status_code=404)
        if not response.ok:
            raise TFEError(
                f"{method} {path} returned {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()


class TestVariables:
    """Variables attached to a private registry module's test configuration."""

    __test__ = False  # not a pytest test class

    def __init__(self, client: TFEClient) -> None:
        self._client = client

    def list(self, module_id: RegistryModuleID) -> list[Variable]:
        """Every variable of the module, following ``meta.pagination.next-page``."""
        variables: list[Variable] = []
        page: int | None = 1
        while page:
            body = (
                self._client.request(
                    "GET",
                    f"{module_id.api_path}/vars",
                    params={"page[number]": page, "page[size]": PAGE_SIZE},
                )
                or {}
            )
            variables.extend(Variable.from_document(d) for d in body.get("data", []))
            pagination = (body.get("meta") or {}).get("pagination") or {}
            page = pagination.get("next-page")
        return variables

    def create(self, module_id: RegistryModuleID, options: VariableCreateOptions) -> Variable:
        body = self._client.request(
            "POST", f"{module_id.api_path}/vars", json=_vars_document(options)
        )
        if body is None:
            raise TFEError("create variable returned an empty response")
        return Variable.from_document(body["data"])

    def update(
        self,
        module_id: RegistryModuleID,
        variable_id: str,
        options: VariableUpdateOptions,
    ) -> Variable:
        body = self._client.request(
            "PATCH",
            f"{module_id.api_path}/vars/{variable_id}",
            json=_vars_document(options, variable_id=variable_id),
        )
        if body is None:
            raise TFEError(f"update variable {variable_id} returned an empty response")
        return Variable.from_document(body["data"])

    def delete(self, module_id: RegistryModuleID, variable_id: str) -> None:
        self._client.request("DELETE", f"{module_id.api_path}/vars/{variable_id}")
