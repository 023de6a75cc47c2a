"""Versioned certified performance data packs.

This package provides:
- The SQLite data pack schema
- A read-only, in-memory snapshot reader
- A builder that writes packs from YAML descriptions
- A manager that swaps the current pack atomically
"""

from perfcalc.datapack.builder import build_data_pack, build_data_pack_from_yaml
from perfcalc.datapack.manager import DataPackLoaded, DataPackManager
from perfcalc.datapack.reader import DataPackReader

__all__ = [
    "DataPackLoaded",
    "DataPackManager",
    "DataPackReader",
    "build_data_pack",
    "build_data_pack_from_yaml",
]
