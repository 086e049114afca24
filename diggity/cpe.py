"""Generation and validation of CPE 2.3 strings for packages."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from diggity.model import Package

WILDCARD = "*"

_CPE_PATTERN = re.compile(
    r"""cpe:2\.3:[aho\*\-](:(((\?*|\*?)([a-zA-Z0-9\-\._]|(\\[\\\*\?!"#$$%&'\(\)\+,\/:;<=>@\[\]\^\x60\{\|}~]))+(\?*|\*?))|[\*\-]|[\+])){5}(:(([a-zA-Z]{2,3}(-([a-zA-Z]{2}|[0-9]{3}))?)|[\*\-]))(:(((\?*|\*?)([a-zA-Z0-9\-\._]|(\\[\\\*\?!"#$$%&'\(\)\+,\/:;<=>@\[\]\^\x60\{\|}~]))+(\?*|\*?))|[\*\-])){4}"""
)


class InvalidCPEError(ValueError):
    """Raised for a string that is not a valid CPE 2.3 name."""


@dataclass
class CPE:
    """The attributes of a CPE 2.3 well-formed name."""

    part: str = ""
    vendor: str = ""
    product: str = ""
    version: str = ""
    update: str = ""
    edition: str = ""
    language: str = ""
    sw_edition: str = ""
    target_sw: str = ""
    target_hw: str = ""
    other: str = ""


def new_cpe23(package: Package, vendor: str, product: str, version: str) -> Package:
    """Add the CPEs generated for vendor, product and version to the package."""
    base = to_cpe(vendor, product, version)
    if package.type == "java" and ";" in base.vendor:
        for each_vendor in base.vendor.split(";"):
            base.vendor = each_vendor
            package.cpes.extend(expand_cpes_by_separators(base))
    else:
        package.cpes.append(cpe_to_string(base))
        package.cpes.extend(expand_cpes_by_separators(base))

    base.vendor = base.product
    package.cpes.append(cpe_to_string(base))
    package.cpes = remove_duplicate_cpes(package.cpes)

    if not package.cpes:
        package.cpes.append(cpe_to_string(base))
    return package


def cpe_join(*args: str) -> str:
    """Join CPE components with colons."""
    return ":".join(args)


def cpe_to_string(cpe: CPE) -> str:
    """Format a CPE as a CPE 2.3 formatted string."""
    return cpe_join(
        "cpe:2.3",
        cpe.part,
        cpe.vendor,
        cpe.product,
        cpe.version,
        cpe.update,
        cpe.edition,
        cpe.language,
        cpe.sw_edition,
        cpe.target_sw,
        cpe.target_hw,
        cpe.other,
    )


def to_cpe(vendor: str, product: str, version: str) -> CPE:
    """Build an application CPE with every other attribute a wildcard."""
    return CPE(
        part="a",
        vendor=vendor,
        product=product,
        version=version,
        update=WILDCARD,
        edition=WILDCARD,
        language=WILDCARD,
        sw_edition=WILDCARD,
        target_sw=WILDCARD,
        target_hw=WILDCARD,
        other=WILDCARD,
    )


def _cross_expand(base: CPE, separator: str, replacement: str) -> list[str]:
    cpes = []
    work = replace(base)
    for vendor in expand(work, "vendor", separator, replacement):
        work.vendor = vendor
        cpes.append(cpe_to_string(work))
        for product in expand(work, "product", separator, replacement):
            work.product = product
            cpes.append(cpe_to_string(work))
    return cpes


def expand_cpes_by_separators(base: CPE) -> list[str]:
    """Produce CPE variants by swapping '-' and '_' or splitting the vendor on '.'."""
    if "-" in base.vendor or "-" in base.product:
        return _cross_expand(base, "-", "_")
    if "_" in base.vendor or "_" in base.product:
        return _cross_expand(base, "_", "-")
    if "." in base.vendor:
        return [cpe_to_string(replace(base, vendor=part)) for part in base.vendor.split(".")]
    return []


def expand(base: CPE, field: str, separator: str, replace: str) -> list[str]:
    """Return the field followed by each step of swapping separator and replacement.

    Each swap is applied on top of the previous ones. Fields other than
    vendor and product give an empty list.
    """
    name = field.lower()
    if name not in ("vendor", "product"):
        return []
    value = getattr(base, name)
    chars = list(value)
    expanded = [value]
    for index, char in enumerate(value):
        if char == separator:
            chars[index] = replace
            expanded.append("".join(chars))
        if char == replace:
            chars[index] = separator
            expanded.append("".join(chars))
    return expanded


def remove_duplicate_cpes(cpes: list[str]) -> list[str]:
    """Drop repeated and invalid CPE strings, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for cpe in cpes:
        if cpe in seen:
            continue
        seen.add(cpe)
        try:
            validate_cpe(cpe)
        except InvalidCPEError:
            continue
        result.append(cpe)
    return result


def validate_cpe(cpe: str) -> None:
    """Raise InvalidCPEError unless the string holds a CPE 2.3 name."""
    if not _CPE_PATTERN.search(cpe):
        raise InvalidCPEError("failed to create CPE, invalid CPE string")