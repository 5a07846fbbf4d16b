"""Shared fixtures: package builders, zip archives and a fake project context."""

import zipfile
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

import pytest
from project_selfupdate import ArrayRepository
from project_selfupdate import Package
from project_selfupdate import PackageSource
from project_selfupdate import StabilityLevel


@dataclass
class FakeProject:
    """In-memory ProjectContext."""

    root: Path
    package_name: str | None = None
    required_version: str | None = None
    minimum_stability: StabilityLevel = StabilityLevel.STABLE
    sources: list[PackageSource] = field(default_factory=list)

    def repositories(self) -> list[PackageSource]:
        return list(self.sources)


@pytest.fixture
def make_package():
    def _make(name: str, version: str, url: str = "https://example.com/dist.zip") -> Package:
        return Package.from_metadata(name, {"version": version, "dist": {"type": "zip", "url": url}})

    return _make


@pytest.fixture
def make_zip():
    def _make(path: Path, files: dict[str, str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as archive:
            for name, content in files.items():
                archive.writestr(name, content)
        return path

    return _make


@pytest.fixture
def make_project(tmp_path):
    def _make(*sources: PackageSource, **options) -> FakeProject:
        root = options.pop("root", tmp_path / "project")
        root.mkdir(parents=True, exist_ok=True)
        return FakeProject(root=root, sources=list(sources), **options)

    return _make


@pytest.fixture
def widget_repository(make_package):
    """acme/widget 1.0.0 (stable) and 1.1.0-beta."""
    return ArrayRepository(
        [
            make_package("acme/widget", "1.0.0", "https://example.com/widget-1.0.0.zip"),
            make_package("acme/widget", "1.1.0-beta", "https://example.com/widget-1.1.0-beta.zip"),
        ]
    )
