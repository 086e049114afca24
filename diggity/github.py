"""Dependency snapshot output for the GitHub dependency submission API."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from diggity.model import Arguments, Distro, Package
from diggity.save import result_to_file

APP_NAME = "diggity"
GITHUB_URL = "https://github.com/carbonetes/diggity"
DIRECT_RELATIONSHIP = "direct"
RUNTIME_SCOPE = "runtime"


@dataclass
class Job:
    """The job that produced the snapshot."""

    name: str = ""
    id: str = ""
    html_url: str = ""


@dataclass
class Detector:
    """The tool that detected the dependencies."""

    name: str = ""
    url: str = ""
    version: str = ""


@dataclass
class FileInfo:
    """Where a manifest lives."""

    source_location: str = ""


@dataclass
class DependencyNode:
    """One resolved dependency of a manifest."""

    purl: str = ""
    metadata: dict[str, Any] | None = None
    relationship: str = ""
    scope: str = ""
    dependencies: list[str] = field(default_factory=list)


@dataclass
class PackageManifest:
    """A group of dependencies found in one file."""

    name: str = ""
    file: FileInfo = field(default_factory=FileInfo)
    metadata: dict[str, Any] | None = None
    resolved: dict[str, DependencyNode] = field(default_factory=dict)


@dataclass
class DependencySnapshot:
    """A dependency snapshot of a scanned target."""

    version: int = 0
    job: Job = field(default_factory=Job)
    sha: str = ""
    ref: str = ""
    detector: Detector = field(default_factory=Detector)
    metadata: dict[str, Any] | None = None
    manifests: dict[str, PackageManifest] = field(default_factory=dict)
    scanned: str = ""


def image_name(args: Arguments) -> str:
    """Return the name the scanned target is reported under.

    An image loses its tag; a tar or directory scan is reported under the
    tar argument.
    """
    if args.image is None:
        return args.tar
    return args.image.split(":")[0]


def get_snapshot_metadata(distro: Distro | None) -> dict[str, Any] | None:
    """Return the distro metadata of the snapshot, or None when nothing is known."""
    if distro is None or not (distro.id or distro.version_id):
        return None
    return {"diggity:distro": f"pkg:generic/{distro.id}@{distro.version_id}"}


def get_package_manifests(packages: list[Package], image: str) -> dict[str, PackageManifest]:
    """Group the packages into manifests keyed by the file they were found in."""
    manifests: dict[str, PackageManifest] = {}
    for package in packages:
        for location in package.locations:
            location_path = location.path.replace(os.sep, "/")
            path = f"{image}:/{location_path}"
            manifest = manifests.get(path)
            if manifest is None:
                manifest = PackageManifest(name=path, file=FileInfo(source_location=path))
                if location.layer_hash:
                    manifest.metadata = {"diggity:filesystem": location.layer_hash}
                manifests[path] = manifest
            manifest.resolved[purl_name(package.purl)] = DependencyNode(
                purl=package.purl,
                relationship=DIRECT_RELATIONSHIP,
                scope=RUNTIME_SCOPE,
            )
    return manifests


def purl_name(purl: str) -> str:
    """Return a package URL without its qualifiers."""
    return purl.split("?")[0]


def _rfc3339_now() -> str:
    text = datetime.now().astimezone().replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _put(target: dict[str, Any], key: str, value: Any) -> None:
    if value:
        target[key] = value


def _sorted_map(mapping: dict[str, Any], convert=lambda value: value) -> dict[str, Any]:
    return {key: convert(mapping[key]) for key in sorted(mapping)}


def _node_json(node: DependencyNode) -> dict[str, Any]:
    result: dict[str, Any] = {}
    _put(result, "package_url", node.purl)
    if node.metadata:
        result["metadata"] = _sorted_map(node.metadata)
    _put(result, "relationship", node.relationship)
    _put(result, "scope", node.scope)
    _put(result, "dependencies", list(node.dependencies))
    return result


def _manifest_json(manifest: PackageManifest) -> dict[str, Any]:
    file_info: dict[str, Any] = {}
    _put(file_info, "source_location", manifest.file.source_location)
    result: dict[str, Any] = {"name": manifest.name, "file": file_info}
    if manifest.metadata:
        result["metadata"] = _sorted_map(manifest.metadata)
    if manifest.resolved:
        result["resolved"] = _sorted_map(manifest.resolved, _node_json)
    return result


def _snapshot_json(snapshot: DependencySnapshot) -> dict[str, Any]:
    job: dict[str, Any] = {}
    _put(job, "correlator", snapshot.job.name)
    _put(job, "id", snapshot.job.id)
    _put(job, "html_url", snapshot.job.html_url)
    detector: dict[str, Any] = {}
    _put(detector, "name", snapshot.detector.name)
    _put(detector, "url", snapshot.detector.url)
    _put(detector, "version", snapshot.detector.version)

    result: dict[str, Any] = {"version": snapshot.version, "job": job}
    _put(result, "sha", snapshot.sha)
    _put(result, "ref", snapshot.ref)
    result["detector"] = detector
    if snapshot.metadata:
        result["metadata"] = _sorted_map(snapshot.metadata)
    if snapshot.manifests:
        result["manifests"] = _sorted_map(snapshot.manifests, _manifest_json)
    _put(result, "scanned", snapshot.scanned)
    return result


_JSON_ESCAPES = {
    "&": "\\u0026",
    "<": "\\u003c",
    ">": "\\u003e",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def get_github_json(
    packages: list[Package], distro: Distro | None, args: Arguments, version: str = ""
) -> str:
    """Serialise the packages as an indented dependency snapshot."""
    snapshot = DependencySnapshot(
        version=0,
        detector=Detector(name=APP_NAME, url=GITHUB_URL, version=version),
        metadata=get_snapshot_metadata(distro),
        manifests=get_package_manifests(packages, image_name(args)),
        scanned=_rfc3339_now(),
    )
    text = json.dumps(_snapshot_json(snapshot), indent=1, ensure_ascii=False)
    for char, escaped in _JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def print_github_json(
    packages: list[Package],
    distro: Distro | None,
    args: Arguments,
    version: str = "",
    output_file: str = "",
) -> None:
    """Write the snapshot to output_file, or print it when none is given."""
    result = get_github_json(packages, distro, args, version)
    if output_file:
        result_to_file(result, output_file)
    else:
        print(result, end="")