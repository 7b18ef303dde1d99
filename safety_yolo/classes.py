from __future__ import annotations

from typing import Dict, List, Tuple

CLASS_NAMES: Tuple[str, ...] = (
    "OxygenTank",
    "NitrogenTank",
    "FirstAidBox",
    "FireAlarm",
    "SafetySwitchPanel",
    "EmergencyPhone",
    "FireExtinguisher",
)

CLASS_COLORS: Dict[str, str] = {
    "OxygenTank": "#00f0ff",
    "NitrogenTank": "#00ff88",
    "FirstAidBox": "#ff6b35",
    "FireAlarm": "#ff3366",
    "SafetySwitchPanel": "#ffdd00",
    "EmergencyPhone": "#aa66ff",
    "FireExtinguisher": "#ff0066",
}

DEFAULT_COLOR = "#00f0ff"


def class_color(class_name: str) -> str:
    """Display color (hex) for a class name; unknown names get the default."""
    return CLASS_COLORS.get(class_name, DEFAULT_COLOR)


def class_name_for(class_id: int, class_names: Tuple[str, ...] = CLASS_NAMES) -> str:
    if 0 <= class_id < len(class_names):
        return class_names[class_id]
    return str(class_id)


def confidence_level(confidence: float) -> str:
    if confidence >= 0.8:
        return "HIGH"
    if confidence >= 0.5:
        return "MED"
    return "LOW"


def load_class_names(metadata_path: str) -> Tuple[str, ...]:
    """
    Load an ordered class table from a `metadata.yaml` file.

    Only the `names:` block is read:

        names:
          0: OxygenTank
          1: NitrogenTank
          ...

    Ids must be contiguous from 0 since the decoder indexes class rows by
    position. No YAML dependency is needed for this format.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # a new top-level key ends the block
            if not raw.startswith((" ", "\t")):
                break

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    ordered: List[str] = []
    for idx in range(len(names)):
        if idx not in names:
            raise ValueError(f"Class ids in {metadata_path} must be contiguous from 0 (missing {idx})")
        ordered.append(names[idx])
    return tuple(ordered)
