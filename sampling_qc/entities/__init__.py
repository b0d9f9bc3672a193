"""Entity packages mounted under ``/api`` by the discovery registrar."""
from __future__ import annotations

from importlib import import_module

MODEL_MODULES = (
    "defect",
    "defect_image",
    "sampling_reason",
    "customer",
    "line_fvi",
    "inspection_data",
    "inf_lotinput",
    "inf_checkin",
    "customer_site",
    "parts",
    "defectdata_customer",
    "defect_customer_image",
)


def load_models() -> None:
    """Import every entity model module so ``create_all`` sees its tables."""

    for name in MODEL_MODULES:
        import_module(f"{__name__}.{name}.models")
