"""Response payloads of the upstream registries."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# ── central search ─────────────────────────────────────────────────────────


class CentralDoc(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    group_id: str = Field(alias="g")
    artifact_id: str = Field(alias="a")
    version: str | None = Field(default=None, alias="v")
    latest_version: str | None = Field(default=None, alias="latestVersion")
    packaging: str | None = Field(default=None, alias="p")
    timestamp: int | None = None
    extensions: list[str] = Field(default_factory=list, alias="ec")

    @property
    def best_version(self) -> str | None:
        return self.latest_version or self.version


class CentralResponseBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    num_found: int = Field(default=0, alias="numFound")
    docs: list[CentralDoc] = Field(default_factory=list)


class CentralSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    response: CentralResponseBody


# ── package registry search ────────────────────────────────────────────────


class RegistryPublisher(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: str = ""
    email: str = ""


class RegistryPackage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    package_name: str = Field(alias="name")
    version: str
    description: str | None = None
    license: str | None = None
    publisher: RegistryPublisher | None = None
    date: str | None = None


class RegistryDownloads(BaseModel):
    monthly: int = 0
    weekly: int = 0


class RegistryObject(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    package: RegistryPackage
    downloads: RegistryDownloads = Field(default_factory=RegistryDownloads)
    dependents: int = 0


class RegistrySearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    objects: list[RegistryObject] = Field(default_factory=list)
