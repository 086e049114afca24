"""SBOM building blocks: package model, CPE generation, file extraction and SBOM output formats."""

__version__ = "1.0.0"

__all__ = ["attestation", "cpe", "cyclonedx", "files", "github", "model", "save"]