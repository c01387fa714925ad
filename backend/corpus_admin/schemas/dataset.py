"""
Dataset schemas for create/update payloads.

Two payload layouts are accepted:

- nested:  {"file_name": ..., "metadata": {"PID": ..., "ID": [...]}, "utterances": [...]}
- flat (older upload form): {"file_name": ..., "PID": ..., "ID": [...], "utterances": [...]}

Flat header fields are folded into ``metadata`` before the document is
stored. Unknown metadata keys and utterance keys are kept as-is.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Any, Dict, Union

from corpus_admin.core.config import settings


HEADER_FIELDS = ("UTF8", "PID", "Begin", "Languages", "Participants", "ID", "Media", "End")

DIGITS_PATTERN = r"^\d*$"


def provided_fields(model: BaseModel) -> Dict[str, Any]:
    """Dump only the fields the client actually sent (extras always included)"""
    data = model.model_dump()
    return {
        key: value for key, value in data.items()
        if key not in type(model).model_fields or key in model.model_fields_set
    }


class HeaderFields(BaseModel):
    """CHAT header values shared by the nested and flat layouts"""
    UTF8: Optional[str] = None
    PID: Optional[str] = None
    Begin: Optional[str] = Field(None, pattern=DIGITS_PATTERN)
    Languages: Optional[Union[str, List[str]]] = None
    Participants: Optional[str] = None
    ID: Optional[List[str]] = None
    Media: Optional[str] = None
    End: Optional[str] = Field(None, pattern=DIGITS_PATTERN)

    @field_validator("Languages")
    @classmethod
    def validate_languages(cls, v):
        if v is None or v == "":
            return v
        codes = [v] if isinstance(v, str) else v
        allowed = settings.ALLOWED_LANGUAGES
        for code in codes:
            if code not in allowed:
                raise ValueError(f"Languages must be one of: {', '.join(allowed)}")
        return v


class DatasetMetadataIn(HeaderFields):
    model_config = ConfigDict(extra="allow")


class UtteranceIn(BaseModel):
    """Raw utterance as written by clients; timestamp/morphology/grammar ride along as extras"""
    model_config = ConfigDict(extra="allow")

    speaker: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class DatasetWrite(HeaderFields):
    """Fields common to create and update"""
    file_name: Optional[str] = Field(None, min_length=1, max_length=255)
    metadata: Optional[DatasetMetadataIn] = None
    utterances: Optional[List[UtteranceIn]] = None

    def build_metadata(self, current: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Merge the payload's header values into a metadata object.

        A nested ``metadata`` object replaces ``current``; flat header fields
        are then laid over it. Returns None when the payload carries no
        header values at all.
        """
        flat = {key: value for key, value in provided_fields(self).items() if key in HEADER_FIELDS}
        if self.metadata is None and not flat:
            return None

        if self.metadata is not None:
            merged = provided_fields(self.metadata)
        else:
            merged = dict(current or {})
        merged.update(flat)
        return merged

    def utterance_documents(self) -> Optional[List[Dict[str, Any]]]:
        if self.utterances is None:
            return None
        return [provided_fields(utterance) for utterance in self.utterances]


class DatasetCreate(DatasetWrite):
    file_name: str = Field(..., min_length=1, max_length=255)


class DatasetUpdate(DatasetWrite):
    """Partial update - only fields present in the body are written"""
    pass
