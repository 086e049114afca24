import json
import os
import re
import xml.etree.ElementTree as ET
from datetime import datetime

import pytest

from diggity.cyclonedx import (
    LIBRARY,
    NAME,
    OPERATING_SYSTEM,
    VENDOR,
    XMLN,
    Component,
    CycloneFormat,
    ExternalReference,
    License,
    Property,
    add_distro_component,
    add_id,
    convert_license,
    convert_packages,
    convert_to_component,
    get_from_source,
    init_properties,
    print_cyclonedx_json,
    print_cyclonedx_xml,
    to_json,
    to_xml,
)
from diggity.model import Distro, Location, Package


def _package1():
    return Package(
        name="zlib",
        type="apk",
        version="1.2.12-r3",
        path=os.path.join("lib", "apk", "db", "installed"),
        locations=[
            Location(
                path=os.path.join("lib", "apk", "db", "installed"),
                layer_hash="9b7240956cfbfefddcd91a2195bfb2ed2cd17bdff81f21111849d643dfaf8131",
            )
        ],
        description="compression/decompression Library",
        licenses=["Zlib"],
        cpes=["cpe:2.3:a:zlib:zlib:1.2.12-r3:*:*:*:*:*:*:*"],
        purl="pkg:alpine/zlib@1.2.12-r3?arch=x86_64&upstream=zlib&distro=",
    )


def _package2():
    status = os.path.join("var", "lib", "dpkg", "status")
    layer = "f1a5f5ce6b163fac7f09b47645c56d2ab676bdcdb268eef06a4d9b782a75bfd0"
    return Package(
        name="libapt-pkg6.0",
        type="deb",
        version="2.2.4",
        path="",
        locations=[Location(path=status, layer_hash=layer), Location(path=status, layer_hash=layer)],
        description="package management runtime library",
        licenses=["GPLv2+"],
        cpes=["cpe:2.3:a:libapt-pkg6.0:libapt-pkg6.0:2.2.4:*:*:*:*:*:*:*"],
        purl="pkg:deb/libapt-pkg6.0@2.2.4arch=s390x",
    )


def _package3():
    return Package(
        name="hardlink",
        type="rpm",
        version="1.0",
        path=os.path.join("var", "lib", "rpm", "Packages"),
        locations=[
            Location(
                path=os.path.join("var", "lib", "rpm", "Packages"),
                layer_hash="d1fd2cca7a7751ca9786b088cf639e65088fa0bda34492bb5ba292c32195461a",
            )
        ],
        description="Create a tree of hardlinks",
        licenses=["GPL+"],
        cpes=[
            "cpe:2.3:a:redhat:hardlink:1.0-19.el7:*:*:*:*:*:*:*",
            "cpe:2.3:a:hardlink:hardlink:1.0-19.el7:*:*:*:*:*:*:*",
        ],
        purl="pkg:rpm/hardlink@1.0arch=x86_64",
    )


def _package4():
    return Package(
        name="phpdocumentor/reflection",
        type="php",
        version="5.2.0",
        path="phpdocumentor/reflection",
        locations=[
            Location(
                path=os.path.join("opt", "phpdoc", "composer.lock"),
                layer_hash="12a3251e94a5184b3c5f4efbc0c8df91cf8479af3745941c9d9102298d258b83",
            )
        ],
        description="Reflection library to do Static Analysis for PHP Projects",
        licenses=["MIT"],
        cpes=[
            "cpe:2.3:a:phpdocumentor:reflection:5.2.0:*:*:*:*:*:*:*",
            "cpe:2.3:a:reflection:reflection:5.2.0:*:*:*:*:*:*:*",
        ],
        purl="pkg:composer/phpdocumentor/reflection@5.2.0",
    )


EXPECTED_COMPONENTS = {
    "zlib": Component(
        bom_ref="pkg:alpine/zlib@1.2.12-r3?arch=x86_64&upstream=zlib&distro=?package-id=",
        type=LIBRARY,
        name="zlib",
        version="1.2.12-r3",
        purl="pkg:alpine/zlib@1.2.12-r3?arch=x86_64&upstream=zlib&distro=",
        licenses=[License(id="Zlib")],
        properties=[
            Property("diggity:package:type", "apk"),
            Property("diggity:cpe23", "cpe:2.3:a:zlib:zlib:1.2.12-r3:*:*:*:*:*:*:*"),
            Property(
                "diggity:location:0:layerHash",
                "9b7240956cfbfefddcd91a2195bfb2ed2cd17bdff81f21111849d643dfaf8131",
            ),
            Property("diggity:location:0:path", os.path.join("lib", "apk", "db", "installed")),
        ],
    ),
    "libapt-pkg6.0": Component(
        bom_ref="pkg:deb/libapt-pkg6.0@2.2.4arch=s390x?package-id=",
        type=LIBRARY,
        name="libapt-pkg6.0",
        version="2.2.4",
        purl="pkg:deb/libapt-pkg6.0@2.2.4arch=s390x",
        licenses=[License(id="GPLv2+")],
        properties=[
            Property("diggity:package:type", "deb"),
            Property("diggity:cpe23", "cpe:2.3:a:libapt-pkg6.0:libapt-pkg6.0:2.2.4:*:*:*:*:*:*:*"),
            Property(
                "diggity:location:0:layerHash",
                "f1a5f5ce6b163fac7f09b47645c56d2ab676bdcdb268eef06a4d9b782a75bfd0",
            ),
            Property("diggity:location:0:path", os.path.join("var", "lib", "dpkg", "status")),
            Property(
                "diggity:location:1:layerHash",
                "f1a5f5ce6b163fac7f09b47645c56d2ab676bdcdb268eef06a4d9b782a75bfd0",
            ),
            Property("diggity:location:1:path", os.path.join("var", "lib", "dpkg", "status")),
        ],
    ),
    "hardlink": Component(
        bom_ref="pkg:rpm/hardlink@1.0arch=x86_64?package-id=",
        type=LIBRARY,
        name="hardlink",
        version="1.0",
        purl="pkg:rpm/hardlink@1.0arch=x86_64",
        licenses=[License(id="GPL+")],
        properties=[
            Property("diggity:package:type", "rpm"),
            Property("diggity:cpe23", "cpe:2.3:a:redhat:hardlink:1.0-19.el7:*:*:*:*:*:*:*"),
            Property("diggity:cpe23", "cpe:2.3:a:hardlink:hardlink:1.0-19.el7:*:*:*:*:*:*:*"),
            Property(
                "diggity:location:0:layerHash",
                "d1fd2cca7a7751ca9786b088cf639e65088fa0bda34492bb5ba292c32195461a",
            ),
            Property("diggity:location:0:path", os.path.join("var", "lib", "rpm", "Packages")),
        ],
    ),
    "phpdocumentor/reflection": Component(
        bom_ref="pkg:composer/phpdocumentor/reflection@5.2.0?package-id=",
        type=LIBRARY,
        name="phpdocumentor/reflection",
        version="5.2.0",
        purl="pkg:composer/phpdocumentor/reflection@5.2.0",
        licenses=[License(id="MIT")],
        properties=[
            Property("diggity:package:type", "php"),
            Property("diggity:cpe23", "cpe:2.3:a:phpdocumentor:reflection:5.2.0:*:*:*:*:*:*:*"),
            Property("diggity:cpe23", "cpe:2.3:a:reflection:reflection:5.2.0:*:*:*:*:*:*:*"),
            Property(
                "diggity:location:0:layerHash",
                "12a3251e94a5184b3c5f4efbc0c8df91cf8479af3745941c9d9102298d258b83",
            ),
            Property("diggity:location:0:path", os.path.join("opt", "phpdoc", "composer.lock")),
        ],
    ),
}

UUID_RE = re.compile(
    r"^[a-fA-F0-9]{8}-[a-fA-F0-9]{4}-4[a-fA-F0-9]{3}-[89aAbB][a-fA-F0-9]{3}-[a-fA-F0-9]{12}$"
)


def _all_packages():
    return [_package1(), _package2(), _package3(), _package4()]


def _parse_timestamp(text):
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def test_convert_packages():
    bom = convert_packages(_all_packages(), None)
    assert bom.xmlns == XMLN
    assert UUID_RE.match(bom.serial_number)
    tools = bom.metadata.tools
    assert tools[0].vendor == VENDOR
    assert tools[0].name == NAME
    assert len(bom.components) - 1 == 4
    names = [component.name for component in bom.components[:-1]]
    assert names == ["hardlink", "libapt-pkg6.0", "phpdocumentor/reflection", "zlib"]
    for component in bom.components[:-1]:
        assert component == EXPECTED_COMPONENTS[component.name]
    assert bom.components[-1] == Component()


def test_convert_packages_timestamp_is_now():
    bom = convert_packages([], None)
    stamp = _parse_timestamp(bom.metadata.timestamp)
    assert abs((datetime.now().astimezone() - stamp).total_seconds()) < 5


DISTRO_CASES = [
    (
        Distro(
            pretty_name="Alpine Linux v3.16",
            name="Alpine Linux",
            id="alpine",
            version_id="3.16.2",
            home_url="https://alpinelinux.org/",
            bug_report_url="https://gitlab.alpinelinux.org/alpine/aports/-/issues",
        ),
        Component(
            type=OPERATING_SYSTEM,
            name="alpine",
            description="Alpine Linux v3.16",
            external_references=[
                ExternalReference(url="https://gitlab.alpinelinux.org/alpine/aports/-/issues", type="issue-tracker"),
                ExternalReference(url="https://alpinelinux.org/", type="website"),
            ],
            properties=[
                Property("diggity:distro:id", "alpine"),
                Property("diggity:distro:prettyName", "Alpine Linux v3.16"),
                Property("diggity:distro:distributionCodename", ""),
                Property("diggity:distro:versionID", "3.16.2"),
            ],
        ),
    ),
    (
        Distro(
            pretty_name="Debian GNU/Linux 11 (bullseye)",
            name="Debian GNU/Linux",
            id="debian",
            version="11 (bullseye)",
            version_id="11",
            home_url="https://www.debian.org/",
            support_url="https://www.debian.org/support",
            bug_report_url="https://bugs.debian.org/",
        ),
        Component(
            type=OPERATING_SYSTEM,
            name="debian",
            description="Debian GNU/Linux 11 (bullseye)",
            external_references=[
                ExternalReference(url="https://bugs.debian.org/", type="issue-tracker"),
                ExternalReference(url="https://www.debian.org/", type="website"),
                ExternalReference(url="https://www.debian.org/support", type="other", comment="support"),
            ],
            properties=[
                Property("diggity:distro:id", "debian"),
                Property("diggity:distro:prettyName", "Debian GNU/Linux 11 (bullseye)"),
                Property("diggity:distro:distributionCodename", ""),
                Property("diggity:distro:versionID", "11"),
            ],
        ),
    ),
    (
        Distro(
            pretty_name="CentOS Linux 8",
            name="CentOS Linux",
            id="centos",
            id_like=["rhel", "fedora"],
            version="8",
            version_id="8",
            home_url="https://centos.org/",
            bug_report_url="https://bugs.centos.org/",
        ),
        Component(
            type=OPERATING_SYSTEM,
            name="centos",
            description="CentOS Linux 8",
            external_references=[
                ExternalReference(url="https://bugs.centos.org/", type="issue-tracker"),
                ExternalReference(url="https://centos.org/", type="website"),
            ],
            properties=[
                Property("diggity:distro:id", "centos"),
                Property("diggity:distro:prettyName", "CentOS Linux 8"),
                Property("diggity:distro:distributionCodename", ""),
                Property("diggity:distro:versionID", "8"),
            ],
        ),
    ),
]


@pytest.mark.parametrize("distro, expected", DISTRO_CASES)
def test_add_distro_component(distro, expected):
    assert add_distro_component(distro) == expected


def test_add_distro_component_without_references():
    component = add_distro_component(Distro(id="scratch"))
    assert component.external_references is None
    assert component.properties[0] == Property("diggity:distro:id", "scratch")


def test_add_distro_component_none():
    assert add_distro_component(None) == Component()


def test_get_from_source():
    metadata = get_from_source()
    stamp = _parse_timestamp(metadata.timestamp)
    assert abs((datetime.now().astimezone() - stamp).total_seconds()) < 5
    assert metadata.tools[0].vendor == VENDOR
    assert metadata.tools[0].name == NAME


@pytest.mark.parametrize("factory", [_package1, _package2, _package3, _package4])
def test_convert_to_component(factory):
    package = factory()
    assert convert_to_component(package) == EXPECTED_COMPONENTS[package.name]


@pytest.mark.parametrize("factory", [_package1, _package2, _package3, _package4])
def test_init_properties(factory):
    package = factory()
    assert init_properties(package) == EXPECTED_COMPONENTS[package.name].properties


@pytest.mark.parametrize(
    "package, expected",
    [
        (Package(id="test-id", purl="test-PURL"), "test-PURL?package-id=test-id"),
        (Package(id="123", purl="456"), "456?package-id=123"),
        (Package(id="", purl=""), "?package-id="),
        (Package(), "?package-id="),
        (
            Package(
                id="50917e31-97a5-4503-ae5f-789c8e0dca45",
                purl="pkg:alpine/ssl_client@1.35.0-r17?arch=x86_64&amp;upstream=busybox&amp;distro=",
            ),
            "pkg:alpine/ssl_client@1.35.0-r17?arch=x86_64&amp;upstream=busybox&amp;distro="
            "?package-id=50917e31-97a5-4503-ae5f-789c8e0dca45",
        ),
        (
            Package(id="ca0220df-b2e7-4d24-985f-91640664463f", purl="pkg:rpm/util-linux@2.32.1arch=x86_64"),
            "pkg:rpm/util-linux@2.32.1arch=x86_64?package-id=ca0220df-b2e7-4d24-985f-91640664463f",
        ),
        (
            Package(id="36177d9c-284c-4300-a22b-d50db3f59dab", purl="pkg:deb/libudev1@247.3-7arch=s390x"),
            "pkg:deb/libudev1@247.3-7arch=s390x?package-id=36177d9c-284c-4300-a22b-d50db3f59dab",
        ),
    ],
)
def test_add_id(package, expected):
    assert add_id(package) == expected


@pytest.mark.parametrize(
    "licenses, expected",
    [
        (["MIT"], [License(id="MIT")]),
        (["GPL-2.0-only"], [License(id="GPL-2.0-only")]),
        (["MIT", "BSD", "GPL2+"], [License(id="MIT"), License(id="BSD"), License(id="GPL2+")]),
        (
            ["test-1", "test-2", "test-3", "test-4", "test-5"],
            [License(id=f"test-{n}") for n in range(1, 6)],
        ),
        ([], None),
    ],
)
def test_convert_license(licenses, expected):
    assert convert_license(Package(licenses=licenses)) == expected


def test_to_json_structure():
    bom = convert_packages([_package1()], DISTRO_CASES[0][0], version="1.0.0")
    text = to_json(bom)
    assert "\\u0026" in text
    assert "&" not in text
    document = json.loads(text)
    assert document["serialNumber"] == bom.serial_number
    assert document["metadata"]["tools"] == [{"vendor": VENDOR, "name": NAME, "version": "1.0.0"}]
    library = document["components"][0]
    assert library["bom-ref"] == "pkg:alpine/zlib@1.2.12-r3?arch=x86_64&upstream=zlib&distro=?package-id="
    assert library["licenses"] == [{"id": "Zlib"}]
    assert library["purl"] == _package1().purl
    assert "description" not in library
    system = document["components"][1]
    assert system["type"] == OPERATING_SYSTEM
    assert system["externalReferences"][1] == {"url": "https://alpinelinux.org/", "type": "website"}


def test_to_json_empty_distro_component():
    document = json.loads(to_json(convert_packages([], None)))
    assert document["components"] == [{"type": "", "name": ""}]


def test_to_xml_structure():
    bom = convert_packages([_package3()], DISTRO_CASES[1][0])
    text = to_xml(bom)
    root = ET.fromstring(text)
    ns = {"c": XMLN}
    assert root.tag == f"{{{XMLN}}}bom"
    assert root.get("serialNumber") == bom.serial_number
    components = root.findall("c:components/c:component", ns)
    assert len(components) == 2
    assert components[0].get("type") == LIBRARY
    assert components[0].get("bom-ref") == "pkg:rpm/hardlink@1.0arch=x86_64?package-id="
    assert components[0].find("c:name", ns).text == "hardlink"
    assert components[0].find("c:licenses/c:license/c:id", ns).text == "GPL+"
    props = components[0].findall("c:properties/c:property", ns)
    assert [(p.get("name"), p.text) for p in props][:2] == [
        ("diggity:package:type", "rpm"),
        ("diggity:cpe23", "cpe:2.3:a:redhat:hardlink:1.0-19.el7:*:*:*:*:*:*:*"),
    ]
    refs = components[1].findall("c:externalReferences/c:reference", ns)
    assert [r.get("type") for r in refs] == ["issue-tracker", "website", "other"]
    assert refs[2].find("c:comment", ns).text == "support"
    assert root.find("c:metadata/c:tools/c:tool/c:vendor", ns).text == VENDOR


def test_round_trip_format_default_namespace():
    bom = CycloneFormat(serial_number="abc", components=[Component(type=LIBRARY, name="x")])
    root = ET.fromstring(to_xml(bom))
    assert root.find(f"{{{XMLN}}}components/{{{XMLN}}}component/{{{XMLN}}}name").text == "x"


def test_print_cyclonedx_json_to_file(tmp_path):
    target = tmp_path / "bom.json"
    print_cyclonedx_json(_all_packages(), None, output_file=str(target))
    document = json.loads(target.read_text(encoding="utf-8"))
    assert [c["name"] for c in document["components"]] == [
        "hardlink",
        "libapt-pkg6.0",
        "phpdocumentor/reflection",
        "zlib",
        "",
    ]


def test_print_cyclonedx_xml_to_stdout(capsys):
    print_cyclonedx_xml([_package1()], None)
    out = capsys.readouterr().out
    root = ET.fromstring(out)
    assert root.tag == f"{{{XMLN}}}bom"
    assert out.endswith("\n")


def test_print_cyclonedx_xml_to_file(tmp_path):
    target = tmp_path / "bom.cdx"
    print_cyclonedx_xml([_package2()], None, output_file=str(target))
    root = ET.fromstring(target.read_text(encoding="utf-8"))
    names = [el.text for el in root.iter(f"{{{XMLN}}}name")]
    assert "libapt-pkg6.0" in names