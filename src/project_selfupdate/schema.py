"""Package and project metadata schema.

Package metadata comes from repositories (Composer-style JSON). Project
metadata comes from pyproject.toml: standard [project] section plus the
custom [tool.selfupdate] section.
"""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from .constraint import StabilityLevel
from .constraint import normalize_version
from .constraint import stability_of

PLACEHOLDER_NAME = "__root__"


class Distribution(BaseModel):
    """Where and how to retrieve a package's installable archive."""

    model_config = ConfigDict(frozen=True)

    type: str = "zip"
    url: str
    reference: str | None = None
    shasum: str | None = None


class Package(BaseModel):
    """A resolved package version (immutable)."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    pretty_version: str
    dist: Distribution | None = None

    @field_validator("name")
    @classmethod
    def _lowercase_name(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def stability(self) -> StabilityLevel:
        return stability_of(self.version)

    @property
    def short_name(self) -> str:
        """Name without the owning namespace (``acme/widget`` -> ``widget``)."""
        return self.name.split("/", 1)[-1]

    @property
    def pretty_string(self) -> str:
        return f"{self.name} {self.pretty_version}"

    @classmethod
    def from_metadata(cls, name: str, data: dict[str, Any]) -> "Package":
        """
        Build a package from repository metadata.

        Args:
            name: Package name (used when metadata carries none)
            data: Mapping with ``version`` and optional ``name``, ``dist``

        Returns:
            Package instance with normalized version

        Raises:
            ValueError: If the version is missing or not a semantic version
            KeyError: If ``version`` is missing
        """
        pretty_version = str(data["version"])
        dist = data.get("dist")
        return cls(
            name=data.get("name", name),
            version=normalize_version(pretty_version),
            pretty_version=pretty_version,
            dist=Distribution(**dist) if dist else None,
        )


class RepositoryConfig(BaseModel):
    """A repository declared under [tool.selfupdate] repositories."""

    model_config = ConfigDict(frozen=True)

    type: str = "composer"
    url: str | None = None
    package: dict[str, Any] | list[dict[str, Any]] | None = None


class ProjectConfig(BaseModel):
    """
    Project metadata from pyproject.toml.

    [project] name is the fallback package name; everything else lives under
    [tool.selfupdate].
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str | None = None
    package: str | None = None
    require: str | None = None
    minimum_stability: StabilityLevel = Field(default=StabilityLevel.STABLE, alias="minimum-stability")
    installed: str | None = None
    repositories: list[RepositoryConfig] = Field(default_factory=list)

    @field_validator("minimum_stability", mode="before")
    @classmethod
    def _parse_stability(cls, value: Any) -> StabilityLevel:
        return StabilityLevel.parse(value)

    @property
    def package_name(self) -> str | None:
        """Configured package name, falling back to the project name."""
        return self.package or self.name

    @classmethod
    def from_pyproject(cls, pyproject_path: Path) -> "ProjectConfig":
        """
        Load project configuration from pyproject.toml.

        Args:
            pyproject_path: Path to pyproject.toml file

        Returns:
            ProjectConfig instance

        Raises:
            FileNotFoundError: If pyproject.toml doesn't exist
            tomllib.TOMLDecodeError: If invalid TOML
            pydantic.ValidationError: If [tool.selfupdate] has invalid values
        """
        if not pyproject_path.exists():
            raise FileNotFoundError(f"pyproject.toml not found: {pyproject_path}")

        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)

        project = data.get("project", {})
        options = data.get("tool", {}).get("selfupdate", {})

        return cls(name=project.get("name"), **options)
