"""Async client for the WorqHat CLI backend.

Wraps every endpoint the wizard consumes (workflow/table listing, scaffold
proposals, per-file code generation and documentation) behind typed result
models.  Public methods never raise: transport errors, non-2xx responses and
payloads that break the contract (``ok`` not ``true``, missing fields) come
back as a result with ``ok=False`` and a ``failure`` kind.  Call
``result.unwrap()`` to turn such a result into the matching
``NetworkFailure`` / ``ValidationFailure``.

Typical usage::

    client = BackendClient("https://cli.worqhat.app")
    workflows = (await client.list_workflows(api_key)).unwrap()
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

import httpx
from pydantic import BaseModel, Field, ValidationError

from worqhat_wizard.config import DEFAULT_BASE_URL
from worqhat_wizard.errors import NetworkFailure, ValidationFailure, WizardError
from worqhat_wizard.scanner.samples import CodeSample

API_KEY_HEADER = "x-worqhat-api-key"

R = TypeVar("R", bound="BackendResult")
P = TypeVar("P", bound=BaseModel)


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class BackendResult(BaseModel):
    """Common envelope of every client call."""

    ok: bool = Field(default=True)
    error: str | None = Field(default=None)
    failure: Literal["network", "validation"] | None = Field(default=None)
    status_code: int | None = Field(default=None)

    @classmethod
    def from_error(cls: type[R], exc: WizardError) -> R:
        kind = "network" if isinstance(exc, NetworkFailure) else "validation"
        status = exc.status_code if isinstance(exc, NetworkFailure) else None
        return cls(ok=False, error=str(exc), failure=kind, status_code=status)

    def unwrap(self: R) -> R:
        """Return ``self`` if the call succeeded, else raise the classified failure."""
        if self.ok:
            return self
        if self.failure == "network":
            raise NetworkFailure(self.error or "Backend request failed", status_code=self.status_code)
        raise ValidationFailure(self.error or "Backend returned an invalid response")


class WorkflowItem(BaseModel):
    id: str
    name: str


class WorkflowList(BackendResult):
    items: list[WorkflowItem] = Field(default_factory=list)


class EnvironmentList(BackendResult):
    organization_id: str | None = None
    environments: list[str] = Field(default_factory=list)


class TableList(BackendResult):
    """Tables across the requested environments, de-duplicated by name."""

    organization_id: str | None = None
    environments: list[str] = Field(default_factory=list)
    tables: list[str] = Field(default_factory=list)
    table_environments: dict[str, list[str]] = Field(default_factory=dict)


class ScaffoldProposal(BackendResult):
    """Files the backend proposes to add to the project."""

    language: str = ""
    tree: str = ""
    paths: list[str] = Field(default_factory=list)
    thinking: str | None = None


class GenerationResult(BackendResult):
    """Generated source for one integration file."""

    path: str | None = None
    code: str | None = None


class DocsResult(BackendResult):
    docs: str = ""


# ---------------------------------------------------------------------------
# Wire payloads (validated before any field is read)
# ---------------------------------------------------------------------------


class _WorkflowsBody(BaseModel):
    data: list[WorkflowItem] = Field(default_factory=list)


class _EnvironmentsBody(BaseModel):
    organizationId: str | None = None
    environments: list[str] = Field(default_factory=list)


class _TableRow(BaseModel):
    table: str
    environment: str


class _TablesBody(BaseModel):
    organizationId: str | None = None
    environments: list[str] = Field(default_factory=list)
    tables: list[_TableRow] = Field(default_factory=list)


class _ScaffoldBody(BaseModel):
    language: str | None = None
    tree: str = ""
    paths: list[str]
    thinking: str | None = None


class _GenerationBody(BaseModel):
    path: str = Field(min_length=1)
    code: str


class _DocsBody(BaseModel):
    docs: str


def _parse(model: type[P], data: dict[str, Any], what: str) -> P:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailure(f"Invalid response from {what}: {exc.error_count()} field error(s)") from exc


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class BackendClient:
    """Async client for the WorqHat CLI backend.

    A fresh ``httpx.AsyncClient`` is opened per call; the wizard makes a
    handful of sequential requests so connection reuse is not worth the
    lifecycle bookkeeping.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    @staticmethod
    def _bearer(api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    @staticmethod
    def _api_key(api_key: str) -> dict[str, str]:
        return {API_KEY_HEADER: api_key}

    async def _fetch(
        self,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform one request and return its JSON body.

        Raises:
            NetworkFailure: On transport errors or a non-2xx status.
            ValidationFailure: If the body is not a JSON object with ``ok: true``.
        """
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                response = await client.request(method, path, headers=headers, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NetworkFailure(
                f"{method} {url} returned HTTP {exc.response.status_code}: "
                f"{exc.response.text[:500]}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.TimeoutException as exc:
            raise NetworkFailure(f"{method} {url} timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise NetworkFailure(f"Cannot reach backend at {url}: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ValidationFailure(f"{method} {url} did not return JSON") from exc
        if not isinstance(data, dict):
            raise ValidationFailure(f"{method} {url} returned a non-object JSON body")
        if data.get("ok") is not True:
            raise ValidationFailure(f"{method} {url}: backend responded with ok=false")
        return data

    # ------------------------------------------------------------------
    # Listing endpoints
    # ------------------------------------------------------------------

    async def list_workflows(self, api_key: str) -> WorkflowList:
        try:
            data = await self._fetch("GET", "/workflows", headers=self._bearer(api_key))
            body = _parse(_WorkflowsBody, data, "workflow listing")
        except WizardError as exc:
            return WorkflowList.from_error(exc)
        return WorkflowList(items=body.data)

    async def list_environments(self, api_key: str) -> EnvironmentList:
        try:
            data = await self._fetch(
                "GET", "/postgres/environments", headers=self._bearer(api_key)
            )
            body = _parse(_EnvironmentsBody, data, "environment listing")
        except WizardError as exc:
            return EnvironmentList.from_error(exc)
        return EnvironmentList(
            organization_id=body.organizationId, environments=body.environments
        )

    async def list_tables(self, api_key: str, environments: list[str]) -> TableList:
        """Fetch tables for *environments*, grouping the environments per table."""
        try:
            data = await self._fetch(
                "POST",
                "/postgres/tables",
                headers=self._bearer(api_key),
                payload={"environments": environments},
            )
            body = _parse(_TablesBody, data, "table listing")
        except WizardError as exc:
            return TableList.from_error(exc)

        table_environments: dict[str, list[str]] = {}
        for row in body.tables:
            envs = table_environments.setdefault(row.table, [])
            if row.environment not in envs:
                envs.append(row.environment)

        return TableList(
            organization_id=body.organizationId,
            environments=body.environments,
            tables=list(table_environments),
            table_environments=table_environments,
        )

    # ------------------------------------------------------------------
    # Scaffold and generation endpoints
    # ------------------------------------------------------------------

    async def request_scaffold(
        self,
        language: str,
        tree: str,
        workflows: list[str],
        tables: list[str],
    ) -> ScaffoldProposal:
        """Ask the backend which integration files to add to the project."""
        try:
            data = await self._fetch(
                "POST",
                "/scaffold",
                payload={
                    "language": language,
                    "currentTree": tree,
                    "selectedWorkflows": workflows,
                    "selectedTables": tables,
                },
            )
            body = _parse(_ScaffoldBody, data, "scaffold proposal")
        except WizardError as exc:
            return ScaffoldProposal.from_error(exc)
        return ScaffoldProposal(
            language=body.language or language,
            tree=body.tree,
            paths=body.paths,
            thinking=body.thinking or None,
        )

    async def _generate(
        self, endpoint: str, what: str, api_key: str, payload: dict[str, Any]
    ) -> GenerationResult:
        try:
            data = await self._fetch(
                "POST", endpoint, headers=self._api_key(api_key), payload=payload
            )
            body = _parse(_GenerationBody, data, what)
        except WizardError as exc:
            return GenerationResult.from_error(exc)
        return GenerationResult(path=body.path, code=body.code)

    async def generate_config(
        self,
        api_key: str,
        language: str,
        target_path: str,
        samples: list[CodeSample],
    ) -> GenerationResult:
        return await self._generate(
            "/scaffold/config",
            "config generation",
            api_key,
            {
                "language": language,
                "targetPath": target_path,
                "samples": [s.model_dump() for s in samples],
            },
        )

    async def generate_db(
        self,
        api_key: str,
        language: str,
        target_path: str,
        config_code: str,
        tables: list[str],
        samples: list[CodeSample],
    ) -> GenerationResult:
        return await self._generate(
            "/scaffold/db",
            "db generation",
            api_key,
            {
                "language": language,
                "targetPath": target_path,
                "configFileCode": config_code,
                "tables": tables,
                "samples": [s.model_dump() for s in samples],
            },
        )

    async def generate_workflows(
        self,
        api_key: str,
        language: str,
        target_path: str,
        config_code: str,
        workflows: list[WorkflowItem],
        samples: list[CodeSample],
    ) -> GenerationResult:
        return await self._generate(
            "/scaffold/workflows",
            "workflows generation",
            api_key,
            {
                "language": language,
                "targetPath": target_path,
                "configFileCode": config_code,
                "workflows": [w.model_dump() for w in workflows],
                "samples": [s.model_dump() for s in samples],
            },
        )

    async def generate_storage(
        self,
        api_key: str,
        language: str,
        target_path: str,
        config_code: str,
    ) -> GenerationResult:
        return await self._generate(
            "/scaffold/storage",
            "storage generation",
            api_key,
            {
                "language": language,
                "targetPath": target_path,
                "configFileCode": config_code,
            },
        )

    async def explain(self, api_key: str, language: str, filename: str, code: str) -> DocsResult:
        """Request prose documentation for one generated file."""
        try:
            data = await self._fetch(
                "POST",
                "/docs/explain",
                headers=self._api_key(api_key),
                payload={"language": language, "filename": filename, "code": code},
            )
            body = _parse(_DocsBody, data, "docs generation")
        except WizardError as exc:
            return DocsResult.from_error(exc)
        return DocsResult(docs=body.docs)
