from typing import List, Optional

from pydantic import BaseModel, Field


class ColorSwatch(BaseModel):
    label: str = ""
    hex: str = ""


class NamedColor(BaseModel):
    name: str = ""
    hex: str = ""


class MakeupProduct(BaseModel):
    brand: str = ""
    product: str = ""
    shade: str = ""
    hex: str = ""
    url: str = ""


class Makeup(BaseModel):
    foundations: List[MakeupProduct] = Field(default_factory=list)
    cushion: MakeupProduct = Field(default_factory=MakeupProduct)
    lipsticks: List[MakeupProduct] = Field(default_factory=list)
    blushes: List[MakeupProduct] = Field(default_factory=list)
    eyeshadows: List[MakeupProduct] = Field(default_factory=list)


class Outfit(BaseModel):
    styleType: str = "Casual"
    imagePrompt: str = ""
    generatedImage: Optional[str] = None


class AnalysisResult(BaseModel):
    """Structured form of the model's seasonal color report."""

    seasonType: str = ""
    colorExtraction: List[ColorSwatch] = Field(default_factory=list)
    colorPalette: List[NamedColor] = Field(default_factory=list)
    jewelryTone: NamedColor = Field(default_factory=NamedColor)
    hairColors: List[NamedColor] = Field(default_factory=list)
    makeup: Makeup = Field(default_factory=Makeup)
    celebrities: List[str] = Field(default_factory=list)
    outfit: Outfit = Field(default_factory=Outfit)


# ------------------ REQUEST BODIES ------------------

class AnalyzeRequest(BaseModel):
    imageBase64: Optional[str] = None
    age: Optional[str] = None
    style: Optional[str] = None


class OutfitImageRequest(BaseModel):
    imagePrompt: str = ""


class SaveReportRequest(BaseModel):
    result: Optional[AnalysisResult] = None
    outfitImage: Optional[str] = None
    rawResult: Optional[str] = None
    age: Optional[str] = None
    style: Optional[str] = None
