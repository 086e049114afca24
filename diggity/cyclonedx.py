"""CycloneDX 1.4 output in JSON and XML."""

from __future__ import annotations

import json
import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from diggity.model import Distro, Package
from diggity.save import result_to_file

VENDOR = "carbonetes"
NAME = "diggity"
XMLN = "http://cyclonedx.org/schema/bom/1.4"

LIBRARY = "library"
OPERATING_SYSTEM = "operating-system"
ISSUE_TRACKER = "issue-tracker"
REFERENCE_WEBSITE = "website"
REFERENCE_OTHER = "other"

_PREFIX = "diggity"


@dataclass
class Tool:
    """A tool that produced the BOM."""

    vendor: str = ""
    name: str = ""
    version: str = ""


@dataclass
class License:
    """A license of a component."""

    id: str = ""
    name: str = ""
    url: str = ""


@dataclass
class Property:
    """A named property of a component."""

    name: str = ""
    value: str = ""


@dataclass
class ExternalReference:
    """A link from a component to an outside resource."""

    url: str = ""
    comment: str = ""
    type: str = ""


@dataclass
class Component:
    """A component of the BOM."""

    bom_ref: str = ""
    mime_type: str = ""
    type: str = ""
    author: str = ""
    publisher: str = ""
    group: str = ""
    name: str = ""
    version: str = ""
    description: str = ""
    licenses: list[License] | None = None
    copyright: str = ""
    cpe: str = ""
    purl: str = ""
    external_references: list[ExternalReference] | None = None
    modified: bool | None = None
    properties: list[Property] | None = None
    components: list["Component"] | None = None


@dataclass
class Metadata:
    """Metadata of the BOM."""

    timestamp: str = ""
    tools: list[Tool] | None = None
    component: Component | None = None
    licenses: list[License] | None = None
    properties: list[Property] | None = None


@dataclass
class CycloneFormat:
    """A CycloneDX bill of materials."""

    xmlns: str = XMLN
    serial_number: str = ""
    metadata: Metadata | None = None
    components: list[Component] | None = field(default=None)


def _rfc3339_now() -> str:
    text = datetime.now().astimezone().replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def convert_packages(packages: list[Package], distro: Distro | None, version: str = "") -> CycloneFormat:
    """Build a BOM from the packages, sorted by name, followed by the distro."""
    ordered = sorted(packages, key=lambda package: package.name)
    components = [convert_to_component(package) for package in ordered]
    components.append(add_distro_component(distro))
    return CycloneFormat(
        xmlns=XMLN,
        serial_number=str(uuid.uuid4()),
        metadata=get_from_source(version),
        components=components,
    )


def add_distro_component(distro: Distro | None) -> Component:
    """Describe the distro as an operating-system component; empty if there is none."""
    if distro is None:
        return Component()

    references = []
    if distro.bug_report_url:
        references.append(ExternalReference(url=distro.bug_report_url, type=ISSUE_TRACKER))
    if distro.home_url:
        references.append(ExternalReference(url=distro.home_url, type=REFERENCE_WEBSITE))
    if distro.support_url:
        references.append(
            ExternalReference(url=distro.support_url, type=REFERENCE_OTHER, comment="support")
        )
    if distro.privacy_policy_url:
        references.append(
            ExternalReference(url=distro.privacy_policy_url, type=REFERENCE_OTHER, comment="privacyPolicy")
        )

    prefix = f"{_PREFIX}:distro"
    properties = [
        Property(name=f"{prefix}:id", value=distro.id),
        Property(name=f"{prefix}:prettyName", value=distro.pretty_name),
        Property(name=f"{prefix}:distributionCodename", value=distro.distrib_codename),
        Property(name=f"{prefix}:versionID", value=distro.version_id),
    ]

    return Component(
        type=OPERATING_SYSTEM,
        name=distro.id,
        description=distro.pretty_name,
        external_references=references or None,
        properties=properties,
    )


def get_from_source(version: str = "") -> Metadata:
    """Return BOM metadata stamped with the current time and this tool."""
    return Metadata(
        timestamp=_rfc3339_now(),
        tools=[Tool(vendor=VENDOR, name=NAME, version=version)],
    )


def convert_to_component(package: Package) -> Component:
    """Describe a package as a library component."""
    return Component(
        bom_ref=add_id(package),
        type=LIBRARY,
        name=package.name,
        version=package.version,
        purl=package.purl,
        licenses=convert_license(package),
        properties=init_properties(package),
    )


def init_properties(package: Package) -> list[Property]:
    """Return the type, CPE and location properties of a package."""
    properties = [Property(name=f"{_PREFIX}:package:type", value=package.type)]
    properties.extend(Property(name=f"{_PREFIX}:cpe23", value=cpe) for cpe in package.cpes)
    for index, location in enumerate(package.locations):
        base = f"{_PREFIX}:location:{index}"
        properties.append(Property(name=f"{base}:layerHash", value=location.layer_hash))
        properties.append(Property(name=f"{base}:path", value=location.path))
    return properties


def add_id(package: Package) -> str:
    """Return the BOM reference of a package."""
    return f"{package.purl}?package-id={package.id}"


def convert_license(package: Package) -> list[License] | None:
    """Return the package licenses as BOM licenses, or None when it has none."""
    licenses = [License(id=name) for name in package.licenses]
    return licenses or None


# JSON

def _put(target: dict[str, Any], key: str, value: Any) -> None:
    if value:
        target[key] = value


def _license_json(item: License) -> dict[str, Any]:
    result: dict[str, Any] = {}
    _put(result, "id", item.id)
    _put(result, "name", item.name)
    _put(result, "url", item.url)
    return result


def _tool_json(tool: Tool) -> dict[str, Any]:
    result: dict[str, Any] = {}
    _put(result, "vendor", tool.vendor)
    result["name"] = tool.name
    _put(result, "version", tool.version)
    return result


def _property_json(prop: Property) -> dict[str, Any]:
    return {"name": prop.name, "value": prop.value}


def _reference_json(ref: ExternalReference) -> dict[str, Any]:
    result: dict[str, Any] = {"url": ref.url}
    _put(result, "comment", ref.comment)
    result["type"] = ref.type
    return result


def _list_json(items: list[Any] | None, convert: Callable[[Any], Any]) -> list[Any] | None:
    return None if items is None else [convert(item) for item in items]


def _component_json(comp: Component) -> dict[str, Any]:
    result: dict[str, Any] = {}
    _put(result, "bom-ref", comp.bom_ref)
    _put(result, "mime-type", comp.mime_type)
    result["type"] = comp.type
    _put(result, "author", comp.author)
    _put(result, "publisher", comp.publisher)
    _put(result, "group", comp.group)
    result["name"] = comp.name
    _put(result, "version", comp.version)
    _put(result, "description", comp.description)
    if comp.licenses is not None:
        result["licenses"] = _list_json(comp.licenses, _license_json)
    _put(result, "copyright", comp.copyright)
    _put(result, "cpe", comp.cpe)
    _put(result, "purl", comp.purl)
    if comp.external_references is not None:
        result["externalReferences"] = _list_json(comp.external_references, _reference_json)
    if comp.modified is not None:
        result["modified"] = comp.modified
    if comp.properties is not None:
        result["properties"] = _list_json(comp.properties, _property_json)
    if comp.components is not None:
        result["components"] = _list_json(comp.components, _component_json)
    return result


def _metadata_json(meta: Metadata) -> dict[str, Any]:
    result: dict[str, Any] = {}
    _put(result, "timestamp", meta.timestamp)
    if meta.tools is not None:
        result["tools"] = _list_json(meta.tools, _tool_json)
    if meta.component is not None:
        result["component"] = _component_json(meta.component)
    if meta.licenses is not None:
        result["licenses"] = _list_json(meta.licenses, _license_json)
    if meta.properties is not None:
        result["properties"] = _list_json(meta.properties, _property_json)
    return result


_JSON_ESCAPES = {
    "&": "\\u0026",
    "<": "\\u003c",
    ">": "\\u003e",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def to_json(bom: CycloneFormat) -> str:
    """Serialise the BOM as indented CycloneDX JSON."""
    document: dict[str, Any] = {}
    _put(document, "serialNumber", bom.serial_number)
    if bom.metadata is not None:
        document["metadata"] = _metadata_json(bom.metadata)
    if bom.components is not None:
        document["components"] = _list_json(bom.components, _component_json)
    text = json.dumps(document, indent=1, ensure_ascii=False)
    for char, escaped in _JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


# XML

def _text(parent: ET.Element, tag: str, value: str, always: bool = False) -> None:
    if value or always:
        element = ET.SubElement(parent, tag)
        if value:
            element.text = value


def _wrapped(
    parent: ET.Element,
    wrapper: str,
    items: list[Any] | None,
    build: Callable[[ET.Element, Any], None],
) -> None:
    if items is None:
        return
    holder = ET.SubElement(parent, wrapper)
    for item in items:
        build(holder, item)


def _license_xml(parent: ET.Element, item: License) -> None:
    element = ET.SubElement(parent, "license")
    _text(element, "id", item.id)
    _text(element, "name", item.name)
    _text(element, "url", item.url)


def _tool_xml(parent: ET.Element, tool: Tool) -> None:
    element = ET.SubElement(parent, "tool")
    _text(element, "vendor", tool.vendor)
    _text(element, "name", tool.name, always=True)
    _text(element, "version", tool.version)


def _property_xml(parent: ET.Element, prop: Property) -> None:
    element = ET.SubElement(parent, "property", {"name": prop.name})
    if prop.value:
        element.text = prop.value


def _reference_xml(parent: ET.Element, ref: ExternalReference) -> None:
    element = ET.SubElement(parent, "reference", {"type": ref.type})
    _text(element, "url", ref.url, always=True)
    _text(element, "comment", ref.comment)


def _component_xml(parent: ET.Element, comp: Component) -> None:
    attributes: dict[str, str] = {}
    if comp.bom_ref:
        attributes["bom-ref"] = comp.bom_ref
    if comp.mime_type:
        attributes["mime-type"] = comp.mime_type
    attributes["type"] = comp.type
    element = ET.SubElement(parent, "component", attributes)
    _text(element, "author", comp.author)
    _text(element, "publisher", comp.publisher)
    _text(element, "group", comp.group)
    _text(element, "name", comp.name, always=True)
    _text(element, "version", comp.version)
    _text(element, "description", comp.description)
    _wrapped(element, "licenses", comp.licenses, _license_xml)
    _text(element, "copyright", comp.copyright)
    _text(element, "cpe", comp.cpe)
    _text(element, "purl", comp.purl)
    _wrapped(element, "externalReferences", comp.external_references, _reference_xml)
    if comp.modified is not None:
        _text(element, "modified", "true" if comp.modified else "false", always=True)
    _wrapped(element, "properties", comp.properties, _property_xml)
    _wrapped(element, "components", comp.components, _component_xml)


def _metadata_xml(parent: ET.Element, meta: Metadata) -> None:
    element = ET.SubElement(parent, "metadata")
    _text(element, "timestamp", meta.timestamp)
    _wrapped(element, "tools", meta.tools, _tool_xml)
    if meta.component is not None:
        _component_xml(element, meta.component)
    _wrapped(element, "licenses", meta.licenses, _license_xml)
    _wrapped(element, "properties", meta.properties, _property_xml)


def to_xml(bom: CycloneFormat) -> str:
    """Serialise the BOM as indented CycloneDX XML."""
    attributes = {"xmlns": bom.xmlns}
    if bom.serial_number:
        attributes["serialNumber"] = bom.serial_number
    root = ET.Element("bom", attributes)
    if bom.metadata is not None:
        _metadata_xml(root, bom.metadata)
    _wrapped(root, "components", bom.components, _component_xml)
    ET.indent(root, space=" ")
    return ET.tostring(root, encoding="unicode", short_empty_elements=False)


def _emit(result: str, output_file: str) -> None:
    if output_file:
        result_to_file(result, output_file)
    else:
        print(result)


def print_cyclonedx_xml(
    packages: list[Package], distro: Distro | None, version: str = "", output_file: str = ""
) -> None:
    """Write the BOM as CycloneDX XML to output_file, or print it when none is given."""
    _emit(to_xml(convert_packages(packages, distro, version)), output_file)


def print_cyclonedx_json(
    packages: list[Package], distro: Distro | None, version: str = "", output_file: str = ""
) -> None:
    """Write the BOM as CycloneDX JSON to output_file, or print it when none is given."""
    _emit(to_json(convert_packages(packages, distro, version)), output_file)