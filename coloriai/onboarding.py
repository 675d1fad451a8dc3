from typing import Optional

AGE_OPTIONS = ["Under 20", "20-29", "30-39", "40-49", "50+", "Prefer not to say"]
STYLE_OPTIONS = ["Daily", "Girly", "Sporty", "Streetwear", "Cocktail Party", "Formal"]

AGE_COOKIE = "userAge"
STYLE_COOKIE = "preferredStyle"
# left behind by older clients; cleared whenever a style is picked
STALE_STYLE_COOKIE = "styleOption"
COOKIE_MAX_AGE = 60 * 60 * 24


def next_step(age: Optional[str], style: Optional[str], is_admin: bool = False) -> str:
    """Which onboarding page the user should land on: age -> style -> selfie."""
    if is_admin:
        return "selfie"
    if not age:
        return "age"
    if not style:
        return "style"
    return "selfie"


def valid_age(age: str) -> bool:
    return age in AGE_OPTIONS


def valid_style(style: str) -> bool:
    return style in STYLE_OPTIONS
