"""Bundle import/export package."""

from zenledger.bundle.codec import (
    BundleFormatError,
    BundleImport,
    dump_bundle_json,
    export_bundle,
    load_bundle,
    parse_bundle_json,
    section_counts,
)

__all__ = [
    "BundleFormatError",
    "BundleImport",
    "dump_bundle_json",
    "export_bundle",
    "load_bundle",
    "parse_bundle_json",
    "section_counts",
]
