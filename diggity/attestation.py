"""SBOM attestation through the cosign command-line tool."""

from __future__ import annotations

import logging
import os
import subprocess
import uuid
from dataclasses import replace
from typing import Callable

from diggity.model import Arguments, AttestationOptions, OutputType

COSIGN = "cosign"
SBOM_PREFIX = "diggity-sbom-"

_log = logging.getLogger(__name__)

_JSON_TYPES = {"json", "cyclonedx-json", "spdx-json", "cyclonedxjson", "spdxjson"}
_CDX_TYPES = {"cyclonedx", "cyclonedx-xml", "cyclonedxxml", "cdx"}
_SPDX_TYPES = {"spdx-tag-value", "spdxtagvalue", "spdxtv", "spdx"}


class AttestationError(RuntimeError):
    """Raised when cosign is missing or one of its commands fails."""


def check_cosign() -> None:
    """Make sure cosign can be run on this machine."""
    try:
        subprocess.run(
            [COSIGN],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
        )
    except FileNotFoundError:
        raise AttestationError("Unable to run cosign. Make sure it is installed first.") from None
    except (subprocess.CalledProcessError, OSError) as exc:
        raise AttestationError(str(exc)) from exc


def bom_filename(output_type: str) -> str:
    """Return a unique file name for a generated SBOM of the given output type."""
    if output_type in _CDX_TYPES:
        extension = ".cdx"
    elif output_type in _SPDX_TYPES:
        extension = ".spdx"
    else:
        extension = ".json"
    return f"{SBOM_PREFIX}{uuid.uuid4()}{extension}"


def attest_bom(image: str, predicate: str, options: AttestationOptions) -> None:
    """Attach the predicate file to the image as a signed attestation."""
    command = [
        COSIGN,
        "attest",
        "--key",
        options.key,
        "--type",
        options.attest_type,
        "--predicate",
        predicate,
        image,
    ]
    try:
        subprocess.run(
            command,
            input=options.password,
            text=True,
            stderr=subprocess.DEVNULL,
            check=True,
        )
    except (subprocess.CalledProcessError, OSError) as exc:
        raise AttestationError(
            "Error occurred when running SBOM attestation. "
            "Please make sure that the paths or fields specified are correct."
        ) from exc


def get_attestation(image: str, options: AttestationOptions) -> None:
    """Verify the image's attestation, printing it or writing it to the output file."""
    command = [
        COSIGN,
        "verify-attestation",
        "--key",
        options.pub,
        "--type",
        options.attest_type,
        image,
    ]
    if options.output_file:
        command.extend(["--output-file", options.output_file])
    stdout = subprocess.DEVNULL if options.output_file else None
    try:
        subprocess.run(command, stdout=stdout, stderr=subprocess.DEVNULL, check=True)
    except (subprocess.CalledProcessError, OSError) as exc:
        raise AttestationError(
            "Error occurred when verifying attestation. "
            "Please make sure that the paths or fields specified are correct."
        ) from exc


def _output_for(output_type: str) -> OutputType:
    try:
        return OutputType.from_name(output_type)
    except ValueError:
        return OutputType.JSON


def attest(
    image: str,
    options: AttestationOptions,
    generate_bom: Callable[[Arguments], object],
) -> str:
    """Attest an SBOM for the image and verify the result.

    When no predicate is given, an SBOM is generated first by calling
    generate_bom with scan arguments that write it to a new file in the
    current directory. Returns the path of the predicate that was attested.
    """
    check_cosign()

    if options.predicate:
        predicate = options.predicate
    else:
        predicate = os.path.join(".", bom_filename(options.output_type))
        arguments = replace(
            options.bom_args or Arguments(),
            image=image,
            output_file=predicate,
            output=_output_for(options.output_type),
        )
        generate_bom(arguments)

    _log.info("Attesting SBOM...")
    attest_bom(image, predicate, options)

    _log.info("Verifying Attestation...")
    get_attestation(image, options)
    return predicate