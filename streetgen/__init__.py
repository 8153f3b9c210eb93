"""StreetGen - street-level views generated from a point and direction on a map."""

__version__ = "0.1.0"
