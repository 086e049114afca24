# diggity

Building blocks for producing a software bill of materials (SBOM) from
container images, image tarballs and directories.

The package covers:

- **Data model** (`diggity.model`): packages, locations, distributions,
  Docker image metadata, secrets, arguments and configuration, plus the
  supported output types (`OutputType`).
- **CPE generation** (`diggity.cpe`): builds CPE 2.3 strings for a package,
  expands vendor and product names across `-`, `_` and `.` separators,
  drops duplicates and rejects strings that do not match the CPE 2.3
  naming grammar.
- **File handling** (`diggity.files`): unpacks image tarballs (and nested
  `layer.tar` files) while skipping unsafe entry names, records the layer
  hash of each extracted file, and walks plain directories.
- **CycloneDX output** (`diggity.cyclonedx`): converts packages and the
  detected distribution into a CycloneDX 1.4 document, in JSON or XML.
- **GitHub dependency snapshots** (`diggity.github`): groups packages by
  the file they were found in and emits a dependency submission document.
- **Attestation** (`diggity.attestation`): signs and verifies an SBOM with
  the `cosign` tool, which must be installed and on `PATH`.

## Generating CPEs

```python
from diggity.cpe import new_cpe23, validate_cpe, InvalidCPEError
from diggity.model import Package

package = Package(name="libc-utils", type="apk", version="0.7.2-r3")
new_cpe23(package, "libc-utils", "libc-utils", "0.7.2-r3")

for cpe in package.cpes:
    print(cpe)
# cpe:2.3:a:libc-utils:libc-utils:0.7.2-r3:*:*:*:*:*:*:*
# cpe:2.3:a:libc-utils:libc_utils:0.7.2-r3:*:*:*:*:*:*:*
# cpe:2.3:a:libc_utils:libc_utils:0.7.2-r3:*:*:*:*:*:*:*
# cpe:2.3:a:libc_utils:libc-utils:0.7.2-r3:*:*:*:*:*:*:*

try:
    validate_cpe("cpe:test")
except InvalidCPEError as error:
    print(error)
```

## Writing a CycloneDX document

```python
from diggity.cyclonedx import convert_packages, to_json, to_xml

bom = convert_packages(packages, distro, version)
print(to_json(bom))
print(to_xml(bom))
```

`print_cyclonedx_json` and `print_cyclonedx_xml` do the same and either
print the result or, when an output file is given, write it there.
Packages are sorted by name, and the distribution, if any, is added as an
`operating-system` component.

## Writing a GitHub dependency snapshot

```python
from diggity.github import get_github_json

document = get_github_json(packages, distro, args, version)
```

Each location of each package becomes a manifest named
`<image>:/<path>`, and every package found there is listed as a direct
runtime dependency keyed by its package URL without qualifiers.

## Attesting an SBOM

`diggity.attestation.attest` generates an SBOM when no predicate file is
given, runs `cosign attest` with the configured key and password, and
then verifies the result with `cosign verify-attestation`. Failures raise
`AttestationError`.

## Running the tests

Install the package with its `test` extra and run pytest in the project
directory.