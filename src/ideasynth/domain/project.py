"""Project records read from the showcase collection, and synthesis results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Fields exposed to API callers for each similar project.
PUBLIC_PROJECT_FIELDS = ("title", "description", "link", "howItsMade", "sourceCode")


class ProjectRecord(BaseModel):
    """A past hackathon project as stored in the vector collection.

    Stored payloads use camelCase keys (``projectDescription``,
    ``howItsMade``, ``sourceCode``, ``lastUpdated``); both the stored and the
    Python names are accepted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    title: str = Field(default="", description="Project title")
    description: str = Field(default="", description="Short project description")
    link: str | None = Field(default=None, description="Showcase page URL")
    how_its_made: str | None = Field(default=None, alias="howItsMade")
    source_code: str | None = Field(default=None, alias="sourceCode")
    last_updated: str | None = Field(default=None, alias="lastUpdated")
    hackathon: str | None = Field(default=None, description="Event the project was built at")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ProjectRecord:
        """Build from a stored payload, tolerating missing or non-string fields."""
        description = payload.get("projectDescription") or payload.get("description") or ""

        def _opt(key: str) -> str | None:
            value = payload.get(key)
            return str(value) if value not in (None, "") else None

        return cls(
            title=str(payload.get("title") or ""),
            description=str(description),
            link=_opt("link"),
            howItsMade=_opt("howItsMade"),
            sourceCode=_opt("sourceCode"),
            lastUpdated=_opt("lastUpdated"),
            hackathon=_opt("hackathon"),
        )

    def to_payload(self) -> dict[str, Any]:
        """Payload layout used when writing to the collection."""
        return {
            "title": self.title,
            "projectDescription": self.description,
            "howItsMade": self.how_its_made or "",
            "sourceCode": self.source_code or "",
            "link": self.link or "",
            "hackathon": self.hackathon or "",
            "lastUpdated": self.last_updated,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Caller-facing shape; optional fields are omitted when empty."""
        data = self.model_dump(by_alias=True)
        out: dict[str, Any] = {key: data[key] for key in PUBLIC_PROJECT_FIELDS[:3]}
        for key in PUBLIC_PROJECT_FIELDS[3:]:
            if data.get(key):
                out[key] = data[key]
        return out


class IdeaSynthesisResult(BaseModel):
    """Synthesized idea text plus the neighbors used to ground it."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Synthesized idea text")
    similar_projects: list[ProjectRecord] = Field(default_factory=list)
