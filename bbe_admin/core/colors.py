import re

HEX_COLOR = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)

DEFAULT_RGB = "0, 0, 0"


def hex_to_rgb(value: str) -> str:
    """'#0c2238' -> '12, 34, 56'. Anything unparseable maps to black."""
    match = HEX_COLOR.match(value.strip())
    if not match:
        return DEFAULT_RGB
    return ", ".join(str(int(part, 16)) for part in match.groups())


def rgb_to_hex(value: str) -> str:
    """'12, 34, 56' -> '#0c2238', used to seed the color picker inputs."""
    parts = value.split(",")
    if len(parts) != 3:
        return "#000000"
    try:
        channels = [max(0, min(255, int(p.strip()))) for p in parts]
    except ValueError:
        return "#000000"
    return "#" + "".join(f"{c:02x}" for c in channels)


def normalize_color(value: str) -> str:
    # Color pickers post hex, the text inputs post RGB triples
    value = (value or "").strip()
    if value.startswith("#"):
        return hex_to_rgb(value)
    return value
