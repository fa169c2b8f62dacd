from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import datetime

from pydantic import BaseModel, Field

# Closed set of section kinds, in canonical display order
SECTION_KINDS = ("header", "about", "experience", "education", "skills", "socials", "footer")


class Theme(str, Enum):
    DEFAULT = "default"
    PINK = "pink"
    DARK = "dark"
    LIGHT = "light"
    RETRO = "retro"
    MODERN = "modern"
    MINIMAL = "minimal"
    GRADIENT = "gradient"
    NEON = "neon"
    MATRIX = "matrix"
    AURORA = "aurora"
    MINIMAL_WHITE = "minimal-white"
    MIDNIGHT = "midnight"


# --- Section payloads ---

class HeaderData(BaseModel):
    name: str
    tagline: Optional[str] = None
    display_picture: Optional[str] = Field(None, alias="displayPicture")

    class Config:
        populate_by_name = True


class AboutData(BaseModel):
    markdown: str = ""


class ExperienceItem(BaseModel):
    company: str
    role: str
    start: str  # yyyy[-MM]
    end: Optional[str] = None  # absent means "present"
    location: Optional[str] = None
    highlights: Optional[List[str]] = None


class EducationItem(BaseModel):
    institution: str
    degree: Optional[str] = None
    start: str
    end: Optional[str] = None


class SocialLink(BaseModel):
    platform: str  # github, linkedin, email, website, ...
    url: str


class FooterData(BaseModel):
    text: str = ""


# --- Sections (tagged by `section`) ---

class HeaderSection(BaseModel):
    section: Literal["header"] = "header"
    data: HeaderData


class AboutSection(BaseModel):
    section: Literal["about"] = "about"
    data: AboutData


class ExperienceSection(BaseModel):
    section: Literal["experience"] = "experience"
    data: List[ExperienceItem] = []


class EducationSection(BaseModel):
    section: Literal["education"] = "education"
    data: List[EducationItem] = []


class SkillsSection(BaseModel):
    section: Literal["skills"] = "skills"
    data: List[str] = []


class SocialsSection(BaseModel):
    section: Literal["socials"] = "socials"
    data: List[SocialLink] = []


class FooterSection(BaseModel):
    section: Literal["footer"] = "footer"
    data: FooterData


PortfolioSection = Annotated[
    Union[
        HeaderSection,
        AboutSection,
        ExperienceSection,
        EducationSection,
        SkillsSection,
        SocialsSection,
        FooterSection,
    ],
    Field(discriminator="section"),
]

# Ordered; at most one section per kind
PortfolioDocument = List[PortfolioSection]


# --- API payloads ---

class PortfolioResponse(BaseModel):
    id: str
    username: str
    published: bool
    theme: str
    url: str
    document: List[Dict[str, Any]]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PortfolioSettingsUpdate(BaseModel):
    """PATCH payload; only non-None fields are written."""
    published: Optional[bool] = None
    theme: Optional[Theme] = None


class PublicPortfolioResponse(BaseModel):
    username: str
    theme: Optional[str] = None  # None when the stored theme is not recognised
    fallback: bool = False
    document: List[Dict[str, Any]]


class JsonImportResponse(BaseModel):
    success: bool
    sections: List[str] = []
    unrecognized: List[str] = []
    malformed: Dict[str, str] = {}


class ResumeImportRequest(BaseModel):
    username: str
    theme: str = Theme.DEFAULT.value
    resume_text: Optional[str] = Field(None, alias="resumeText")
    resume_base64: Optional[str] = Field(None, alias="resumeBase64")
    file_type: Literal["text", "binary", "pdf"] = Field("text", alias="fileType")
    name: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        populate_by_name = True


class ImportResult(BaseModel):
    success: bool
    error: Optional[str] = None
