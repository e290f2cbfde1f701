"""Subject color palette and name-based color classification."""

from enum import Enum


class Color(Enum):
    """Display colors, valued by their CSS3 color names."""

    PURPLE = "purple"
    ORANGE = "orange"
    CYAN = "cyan"
    INDIGO = "indigo"
    RED = "red"
    GREEN = "green"
    BROWN = "brown"
    PINK = "pink"
    LIGHT_GRAY = "gainsboro"
    MINT = "mediumaquamarine"
    GRAY = "darkgray"
    MID_GRAY = "gray"
    ACCENT = "dodgerblue"


# Checked top to bottom, first match wins. Science comes after the
# humanities and applied subjects so that "bio", "phy" and "sci" do not
# claim "Biotech", "Geography" or "Computer Science".
SUBJECT_COLORS: tuple[tuple[frozenset[str], Color], ...] = (
    # core subjects
    (frozenset({"cl", "hcl", "tl", "htl", "ml"}), Color.PURPLE),
    (frozenset({"math"}), Color.ORANGE),
    (frozenset({"english", "el"}), Color.CYAN),

    # applied subjects
    (frozenset({"biotech", "biot", "bt"}), Color.INDIGO),
    (frozenset({"comp", "computing"}), Color.MINT),
    (frozenset({"electronics", "elec"}), Color.GRAY),
    (frozenset({"ds", "design studies"}), Color.MID_GRAY),

    # humanities
    (frozenset({"ss", "social studies"}), Color.GREEN),
    (frozenset({
        "geography", "ch(ge)", "ge", "geog",
        "history", "hist",
    }), Color.BROWN),

    # science
    (frozenset({
        "science", "sci",
        "phy", "physics",
        "bio", "biology",
        "chem", "chemistry",
    }), Color.RED),

    # non-graded
    (frozenset({"s&w"}), Color.PINK),
    (frozenset({"break"}), Color.LIGHT_GRAY),
)

# Aliases this short only match the whole name, so "Elec" is not "EL".
EXACT_MATCH_MAX_LENGTH = 2


def _alias_matches(alias: str, lower_name: str) -> bool:
    if len(alias) <= EXACT_MATCH_MAX_LENGTH:
        return lower_name == alias
    return alias in lower_name


def color_for(name: str, default: Color = Color.ACCENT) -> Color:
    """Classify a free-text subject name into a palette color.

    Args:
        name: Subject name as displayed or received.
        default: Color returned when no alias matches.

    Returns:
        The color of the first matching table entry, else ``default``.
    """
    lower_name = name.lower()

    for aliases, color in SUBJECT_COLORS:
        if any(_alias_matches(alias, lower_name) for alias in aliases):
            return color

    return default
