"""Core data models shared across the SBOM tooling."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class Arguments:
    """Command-line arguments that drive an SBOM scan."""

    image: str | None = None
    output: "OutputType | None" = None
    quiet: bool = False
    output_file: str = ""
    enabled_parsers: list[str] = field(default_factory=list)
    disable_file_listing: bool = False
    secret_content_regex: str = ""
    disable_secret_search: bool = False
    secret_max_file_size: int = 0
    registry_uri: str = ""
    registry_username: str = ""
    registry_password: str = ""
    registry_token: str = ""
    dir: str = ""
    tar: str = ""
    excluded_filenames: list[str] = field(default_factory=list)


@dataclass
class AttestationConfig:
    """Key material settings for attestation, as read from the config file."""

    key: str = ""
    pub: str = ""
    password: str = ""


@dataclass
class AttestationOptions:
    """Options for attesting an SBOM with cosign."""

    key: str = ""
    pub: str = ""
    attest_type: str = ""
    predicate: str = ""
    password: str = ""
    output_file: str = ""
    output_type: str = ""
    bom_args: Arguments | None = None


@dataclass
class Registry:
    """Container registry connection settings."""

    uri: str = ""
    username: str = ""
    password: str = ""
    token: str = ""


@dataclass
class SecretConfig:
    """Settings for the secret search."""

    disabled: bool = False
    secret_regex: str = ""
    excludes: list[str] | None = None
    max_file_size: int = 0


@dataclass
class Configuration:
    """Settings loaded from the YAML configuration file."""

    secret_config: SecretConfig = field(default_factory=SecretConfig)
    enabled_parsers: list[str] = field(default_factory=list)
    disable_file_listing: bool = False
    quiet: bool = False
    output_file: str = ""
    output: list[str] | None = None
    registry: Registry = field(default_factory=Registry)
    attestation_config: AttestationConfig = field(default_factory=AttestationConfig)


_DISTRO_KEYS = (
    ("pretty_name", "prettyName"),
    ("name", "name"),
    ("id", "id"),
    ("id_like", "idLike"),
    ("version", "version"),
    ("version_id", "versionID"),
    ("distrib_id", "distribID"),
    ("distrib_description", "distribDescription"),
    ("distrib_codename", "versionCodename"),
    ("home_url", "homeURL"),
    ("support_url", "supportURL"),
    ("bug_report_url", "bugReportURL"),
    ("privacy_policy_url", "privacyPolicyURL"),
)


@dataclass
class Distro:
    """Operating system distribution found in an image."""

    pretty_name: str = ""
    name: str = ""
    id: str = ""
    id_like: list[str] = field(default_factory=list)
    version: str = ""
    version_id: str = ""
    distrib_id: str = ""
    distrib_description: str = ""
    distrib_codename: str = ""
    home_url: str = ""
    support_url: str = ""
    bug_report_url: str = ""
    privacy_policy_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        result: dict[str, Any] = {}
        for attr, key in _DISTRO_KEYS:
            value = getattr(self, attr)
            if value:
                result[key] = list(value) if isinstance(value, list) else value
        return result


@dataclass
class DockerManifest:
    """An entry of an image's manifest.json."""

    config: str = ""
    repo_tags: Any = None
    layers: Any = None


@dataclass
class ContainerConfig:
    """The runtime configuration block of an image config."""

    env: list[str] = field(default_factory=list)
    entrypoint: list[str] = field(default_factory=list)
    cmd: list[str] = field(default_factory=list)
    workdir: str = ""
    args_escaped: bool = False
    on_build: Any = None


@dataclass
class History:
    """One history entry of an image config."""

    created: str = ""
    created_by: str = ""
    empty_layer: bool | None = None
    comment: str = ""


@dataclass
class RootFileSystem:
    """The root filesystem description of an image config."""

    type: str = ""
    diff_ids: list[str] = field(default_factory=list)


@dataclass
class DockerConfig:
    """An image configuration document."""

    architecture: str = ""
    config: ContainerConfig = field(default_factory=ContainerConfig)
    created: str = ""
    history: list[History] = field(default_factory=list)
    os: str = ""
    rootfs: RootFileSystem = field(default_factory=RootFileSystem)
    variant: str = ""


@dataclass
class ImageInfo:
    """Image configuration and manifest information."""

    docker_config: DockerConfig = field(default_factory=DockerConfig)
    docker_manifest: list[DockerManifest] = field(default_factory=list)


@dataclass
class File:
    """A file found in the scanned filesystem."""

    path: str = ""
    owner_uid: str = ""
    owner_gid: str = ""
    permissions: str = ""
    digest: Any = None


@dataclass
class Location:
    """Where a package was found."""

    path: str = ""
    layer_hash: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the JSON form."""
        return {"path": self.path, "layerHash": self.layer_hash}


class OutputType(str, Enum):
    """Supported output formats."""

    JSON = "json"
    TABLE = "table"
    CYCLONEDX_XML = "cyclonedx-xml"
    CYCLONEDX_JSON = "cyclonedx-json"
    SPDX_JSON = "spdx-json"
    SPDX_TAG_VALUE = "spdx-tag-value"
    GITHUB_JSON = "github-json"

    @classmethod
    def from_name(cls, name: str) -> "OutputType":
        """Resolve an output type from its name or one of its aliases."""
        key = name.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        try:
            return OUTPUT_ALIASES[key]
        except KeyError:
            raise ValueError(f"unsupported output type: {name!r}") from None


OUTPUT_ALIASES: dict[str, OutputType] = {
    "cyclonedxxml": OutputType.CYCLONEDX_XML,
    "cyclonedx": OutputType.CYCLONEDX_XML,
    "cyclone": OutputType.CYCLONEDX_XML,
    "cyclonedxjson": OutputType.CYCLONEDX_JSON,
    "spdxjson": OutputType.SPDX_JSON,
    "spdxtagvalue": OutputType.SPDX_TAG_VALUE,
    "spdx": OutputType.SPDX_TAG_VALUE,
    "spdxtv": OutputType.SPDX_TAG_VALUE,
    "githubjson": OutputType.GITHUB_JSON,
    "github": OutputType.GITHUB_JSON,
}


def _plain(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    return to_dict() if callable(to_dict) else value


@dataclass
class Package:
    """A package discovered during a scan."""

    id: str = ""
    name: str = ""
    type: str = ""
    version: str = ""
    path: str = ""
    locations: list[Location] = field(default_factory=list)
    description: str = ""
    licenses: list[str] = field(default_factory=list)
    cpes: list[str] = field(default_factory=list)
    purl: str = ""
    metadata: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; description and licenses are left out when empty."""
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "version": self.version,
            "path": self.path,
            "locations": [location.to_dict() for location in self.locations],
        }
        if self.description:
            result["description"] = self.description
        if self.licenses:
            result["licenses"] = list(self.licenses)
        result["cpes"] = list(self.cpes)
        result["purl"] = self.purl
        result["metadata"] = _plain(self.metadata)
        return result


@dataclass
class Secret:
    """A secret found in a file."""

    content_regex_name: str = ""
    file_name: str = ""
    file_path: str = ""
    line_number: str = ""


@dataclass
class SecretResults:
    """Secrets found together with the configuration that was applied."""

    configuration: SecretConfig = field(default_factory=SecretConfig)
    secrets: list[Secret] = field(default_factory=list)


@dataclass
class Version:
    """Build information of the tool."""

    app_name: str = ""
    version: str = ""
    build_date: str = ""
    git_commit: str = ""
    git_desc: str = ""
    runtime_version: str = ""
    compiler: str = ""
    platform: str = ""


@dataclass
class SBOMResult:
    """The final result of a scan."""

    packages: list[Package] = field(default_factory=list)
    secret: SecretResults | None = None
    image_info: ImageInfo = field(default_factory=ImageInfo)
    distro: Distro | None = None