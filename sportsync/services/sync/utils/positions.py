"""Position classification shared by player matching and jersey resolution."""
from typing import Optional

GOALKEEPER = "goalkeeper"
DEFENDER = "defender"
MIDFIELDER = "midfielder"
ATTACKER = "attacker"

_ALIASES = {
    GOALKEEPER: {"goalkeeper", "gk", "g", "keeper"},
    DEFENDER: {"defender", "d", "back", "cb", "lb", "rb", "lwb", "rwb"},
    MIDFIELDER: {"midfielder", "m", "cm", "dm", "am", "lm", "rm", "cdm", "cam"},
    ATTACKER: {"attacker", "forward", "f", "st", "cf", "lw", "rw", "striker", "winger"},
}


def classify_position(position: Optional[str]) -> str:
    """
    Map a provider position label onto one of the four position groups.

    Unknown or missing labels fall into the midfielder group.

    Examples:
        >>> classify_position("Goalkeeper")
        'goalkeeper'
        >>> classify_position("CB")
        'defender'
        >>> classify_position(None)
        'midfielder'
    """
    label = (position or "").strip().lower()
    if not label:
        return MIDFIELDER

    for group, aliases in _ALIASES.items():
        if label in aliases:
            return group

    # Compound labels such as "Centre-Back" or "Left Winger"
    if "keeper" in label:
        return GOALKEEPER
    if "back" in label or "defen" in label:
        return DEFENDER
    if "forward" in label or "wing" in label or "strik" in label or "attack" in label:
        return ATTACKER
    return MIDFIELDER
