"""legacyfile: timestamped legacy snapshots of markdown documents.

Snapshots accumulate in a flat archive folder and are consolidated on
demand into a single archival record per document.
"""

__version__ = "0.1.0"
