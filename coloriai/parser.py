"""
Turns the Markdown/CSV report written by the vision model into an AnalysisResult.

The model is asked for bold headers such as ``**Color Extraction:**`` followed by
CSV rows or ``- `` bullets. Parsing is line oriented: a header switches the
current section and the rows below it are read until the next header. Anything
that does not fit is skipped, so a malformed reply yields a partially filled
result instead of an error.
"""

import re
from typing import List, Optional

from .models import AnalysisResult, ColorSwatch, MakeupProduct, NamedColor

SEASON_HEADER = "**Seasonal Color Type:**"
IMAGE_PROMPT_HEADER = "**Image Prompt:**"
JEWELRY_HEADER = "**Jewelry Tone:**"

# header (lowercased) -> section name
SECTION_HEADERS = [
    ("**color extraction:**", "colorExtraction"),
    ("**9-color seasonal palette:**", "colorPalette"),
    ("**flattering hair colors:**", "hairColors"),
    ("**foundations:**", "foundations"),
    ("**korean cushion:**", "cushion"),
    ("**lipsticks:**", "lipsticks"),
    ("**blushes:**", "blushes"),
    ("**eyeshadow palettes:**", "eyeshadows"),
    ("**similar celebrities:**", "celebrities"),
]

COLOR_SECTIONS = {"colorExtraction", "colorPalette", "hairColors"}
MAKEUP_SECTIONS = {"foundations", "cushion", "lipsticks", "blushes", "eyeshadows"}
CSV_HEADER_CELLS = {"label", "name", "hex"}

_BULLET_RE = re.compile(r"^(?:[-*•]\s+|\d+[.)]\s+)")
_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")
_IMAGE_PROMPT_RE = re.compile(r"\*\*Image Prompt:\*\*[ \t]*(.*)", re.IGNORECASE)
_TABLE_RULE_RE = re.compile(r"^\|?\s*:?-{2,}")


def has_season_section(text: str) -> bool:
    return SEASON_HEADER.lower() in (text or "").lower()


def extract_image_prompt(text: str) -> str:
    """Return the outfit prompt the model wrote, or "" when there is none."""
    lines = (text or "").splitlines()
    for i, line in enumerate(lines):
        m = _IMAGE_PROMPT_RE.search(line)
        if not m:
            continue
        inline = _clean(m.group(1))
        if inline:
            return inline
        for nxt in lines[i + 1:]:
            if nxt.strip():
                return _clean(_strip_bullet(nxt.strip()))
        return ""
    return ""


def _split_header(line: str, header: str) -> Optional[str]:
    idx = line.lower().find(header.lower())
    if idx < 0:
        return None
    return line[idx + len(header):].strip()


def _strip_bullet(line: str) -> str:
    return _BULLET_RE.sub("", line, count=1)


def _clean(value: str) -> str:
    return value.strip().strip("*").strip().strip('"').strip()


def _normalize_hex(value: str) -> str:
    value = _clean(value)
    m = _HEX_RE.match(value)
    if m:
        return "#" + m.group(1).upper()
    return value


def _cells(line: str) -> List[str]:
    if line.startswith("|"):
        return [_clean(c) for c in line.strip("|").split("|")]
    return [_clean(c) for c in line.split(",")]


def _is_csv_header(cells: List[str]) -> bool:
    return all(c.lower() in CSV_HEADER_CELLS for c in cells[:2])


def _product(cells: List[str]) -> Optional[MakeupProduct]:
    if len(cells) < 5 or cells[0].lower() == "brand":
        return None
    return MakeupProduct(
        brand=cells[0],
        product=cells[1],
        shade=cells[2],
        hex=_normalize_hex(cells[3]),
        # URLs may contain commas
        url=",".join(cells[4:]).strip(),
    )


def parse_report(text: str, style: str = "Casual", outfit_image: Optional[str] = None) -> AnalysisResult:
    data = AnalysisResult()
    data.outfit.styleType = style or "Casual"
    data.outfit.generatedImage = outfit_image
    data.outfit.imagePrompt = extract_image_prompt(text)

    section = ""
    for raw in (text or "").splitlines():
        line = raw.strip()
        if not line or _TABLE_RULE_RE.match(line):
            continue
        lower = line.lower()

        value = _split_header(line, SEASON_HEADER)
        if value is not None:
            data.seasonType = _clean(value)
            section = "" if data.seasonType else "seasonType"
            continue

        value = _split_header(line, JEWELRY_HEADER)
        if value is not None:
            section = "jewelryTone"
            if value:
                _fill_jewelry(data, _cells(value))
                section = ""
            continue

        if IMAGE_PROMPT_HEADER.lower() in lower:
            section = "imagePrompt"
            continue

        matched = False
        for header, name in SECTION_HEADERS:
            if header in lower:
                section = name
                matched = True
                inline = _split_header(line, header)
                if name == "celebrities" and inline:
                    data.celebrities.extend(c for c in _cells(inline) if c)
                break
        if matched:
            continue

        line = _strip_bullet(line)
        if not line or line.startswith("**"):
            continue

        if section == "seasonType":
            data.seasonType = _clean(line)
            section = ""
        elif section == "jewelryTone":
            _fill_jewelry(data, _cells(line))
            section = ""
        elif section in COLOR_SECTIONS:
            cells = _cells(line)
            if len(cells) < 2 or not cells[0] or not cells[1] or _is_csv_header(cells):
                continue
            hex_value = _normalize_hex(cells[1])
            if section == "colorExtraction":
                data.colorExtraction.append(ColorSwatch(label=cells[0], hex=hex_value))
            elif section == "colorPalette":
                data.colorPalette.append(NamedColor(name=cells[0], hex=hex_value))
            else:
                data.hairColors.append(NamedColor(name=cells[0], hex=hex_value))
        elif section in MAKEUP_SECTIONS:
            product = _product(_cells(line))
            if product is None:
                continue
            if section == "cushion":
                data.makeup.cushion = product
            else:
                getattr(data.makeup, section).append(product)
        elif section == "celebrities":
            name = _clean(line)
            if name:
                data.celebrities.append(name)

    return data


def _fill_jewelry(data: AnalysisResult, cells: List[str]) -> None:
    if not cells or not cells[0]:
        return
    if len(cells) == 1:
        # "Gold (#D4AF37)"
        m = re.search(r"#[0-9a-fA-F]{6}\b", cells[0])
        if m:
            name = cells[0][:m.start()].strip(" (-:")
            data.jewelryTone = NamedColor(name=name, hex=m.group(0).upper())
            return
    data.jewelryTone = NamedColor(
        name=cells[0],
        hex=_normalize_hex(cells[1]) if len(cells) > 1 else "",
    )
