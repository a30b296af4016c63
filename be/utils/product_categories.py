"""
Product Catalog Categories

Single source of truth for how a catalog category is named on the wire:

    key            form-state key used by the selection builder ("cameras")
    category       value stored in products.category ("camera")
    collection     REST collection path ("/cameras")
    ref_key        key of the product reference inside a selection row
    selection_key  BOQ payload field carrying the rows ("camera_selection")
    label          display group recorded on BOQ items
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ProductCategory:
    key: str
    category: str
    collection: str
    ref_key: str
    selection_key: str
    label: str


PRODUCT_CATEGORIES: List[ProductCategory] = [
    ProductCategory("nvrs", "nvr", "nvrs", "nvr", "nvr_selection", "NVR Systems"),
    ProductCategory("cameras", "camera", "cameras", "camera", "camera_selection", "Cameras"),
    ProductCategory("switches", "switch", "switches", "switch", "switch_selection", "Network Switches"),
    ProductCategory("racks", "rack", "racks", "rack", "rack_selection", "Server Racks"),
    ProductCategory("poles", "pole", "poles", "pole", "pole_selection", "Poles"),
    ProductCategory("weatherproofBoxes", "weatherproof_box", "weatherproof-boxes", "weatherproof_box", "wpf_selection", "Weatherproof Boxes"),
    ProductCategory("cables", "cable", "cables", "cable", "cable_selection", "Cables"),
    ProductCategory("conduits", "conduit", "conduits", "conduit", "conduit_selection", "Conduits"),
    ProductCategory("wires", "wire", "wires", "wire", "wire_selection", "Wires"),
    ProductCategory("ups", "ups", "upss", "ups", "ups_selection", "UPS Systems"),
    ProductCategory("lcds", "lcd", "lcds", "lcd", "lcd_selection", "LCD Displays"),
]

BY_KEY: Dict[str, ProductCategory] = {c.key: c for c in PRODUCT_CATEGORIES}
BY_CATEGORY: Dict[str, ProductCategory] = {c.category: c for c in PRODUCT_CATEGORIES}
BY_COLLECTION: Dict[str, ProductCategory] = {c.collection: c for c in PRODUCT_CATEGORIES}
BY_SELECTION_KEY: Dict[str, ProductCategory] = {c.selection_key: c for c in PRODUCT_CATEGORIES}


def get_category(key: str) -> Optional[ProductCategory]:
    """Look a category up by any of its names."""
    return (
        BY_KEY.get(key)
        or BY_CATEGORY.get(key)
        or BY_COLLECTION.get(key)
        or BY_SELECTION_KEY.get(key)
    )
