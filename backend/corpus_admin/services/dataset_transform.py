"""
Dataset Transform - normalizes stored transcript documents for the API

Every read and write endpoint returns datasets through transform_dataset(),
so clients always see one shape no matter which historical document layout
is stored underneath.

Flow:
1. Endpoint loads a Dataset row and exports it with Dataset.to_document()
2. parse_participant_info() reads the PAR descriptor out of metadata.ID
3. transform_utterance() normalizes each raw utterance record
4. transform_dataset() assembles the NormalizedDataset

Participant descriptors are CHAT @ID headers flattened to a string:

    "eng|Pitt|PAR|74;|male|Control||Participant|||"
     lang|corpus|code|age|sex|group|ses|role|education|custom|

All functions are pure and total: missing or malformed input degrades to
documented defaults instead of raising. The one exception is an utterance
element that is not a mapping at all; transform_utterances() skips it and
logs its 1-based position.
"""

import math
from typing import Any, List, Mapping, Optional, Tuple, TypedDict

from corpus_admin.core.logging_config import logger


PARTICIPANT_MARKER = "PAR"
DESCRIPTOR_DELIMITER = "|"
TIMESTAMP_DELIMITER = "_"

DEFAULT_PARTICIPANT_ID = "PAR"
UNKNOWN = "Unknown"
DEFAULT_SPEAKER = "Unknown"

# Positions inside a participant descriptor
ID_INDEX = 2
AGE_INDEX = 3
SEX_INDEX = 4
GROUP_INDEX = 5


class NormalizedParticipant(TypedDict):
    id: str
    age: str
    sex: str
    group: str
    mmse: str


class TimeSpan(TypedDict):
    start: float
    end: float


class Annotation(TypedDict):
    raw: str


class _UtteranceBase(TypedDict):
    speaker: str
    text: str
    start_time: float
    end_time: float
    morphology: Annotation
    grammar: Annotation
    tier: str
    value: str


class NormalizedUtterance(_UtteranceBase, total=False):
    timestamp: TimeSpan


class NormalizedDataset(TypedDict):
    id: str
    file_name: str
    participant_count: int
    participants: List[NormalizedParticipant]
    utterances: List[NormalizedUtterance]
    created_at: Any
    updated_at: Any
    metadata: Any


# ==================== Metadata Normalizer ====================

def find_participant_descriptor(ids: Any) -> str:
    """Return the first ID entry mentioning PAR, or "" when there is none"""
    if not isinstance(ids, list):
        return ""
    for entry in ids:
        if isinstance(entry, str) and PARTICIPANT_MARKER in entry:
            return entry
    return ""


def _segment(parts: List[str], index: int) -> str:
    return parts[index] if index < len(parts) else ""


def _strip_age(raw_age: str) -> str:
    # CHAT ages are written "74;" - only the trailing separator goes
    age = raw_age[:-1] if raw_age.endswith(";") else raw_age
    return age or UNKNOWN


def parse_participant_info(metadata: Any) -> NormalizedParticipant:
    """
    Extract participant fields from a metadata object.

    Scans metadata["ID"] in order and uses the first descriptor containing
    "PAR". Segments that are missing or empty fall back to defaults, so a
    truncated descriptor such as "eng|Pitt|PAR" is valid input.

    Args:
        metadata: The stored metadata object (any value is accepted)

    Returns:
        NormalizedParticipant with id, age, sex, group and mmse
    """
    ids = metadata.get("ID") if isinstance(metadata, Mapping) else None
    parts = find_participant_descriptor(ids).split(DESCRIPTOR_DELIMITER)

    raw_age = _segment(parts, AGE_INDEX)

    return {
        "id": _segment(parts, ID_INDEX) or DEFAULT_PARTICIPANT_ID,
        "age": _strip_age(raw_age) if raw_age else UNKNOWN,
        "sex": _segment(parts, SEX_INDEX) or UNKNOWN,
        "group": _segment(parts, GROUP_INDEX) or UNKNOWN,
        # Not present in the descriptor format
        "mmse": UNKNOWN,
    }


# ==================== Utterance Transform ====================

def round_half_up(value: float, digits: int = 2) -> float:
    """Round like Math.round: halves go towards positive infinity"""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def ms_to_seconds(ms: float) -> float:
    """Convert milliseconds to seconds with two-decimal precision"""
    return round_half_up(ms / 1000)


def _parse_number(raw: str) -> Optional[float]:
    text = raw.strip()
    # A blank half reads as 0
    if not text:
        return 0
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_timestamp(timestamp: Any) -> Tuple[float, float]:
    """
    Parse a "<startMs>_<endMs>" token into (start_seconds, end_seconds).

    A blank half counts as 0 ("1500_" is (1.5, 0)). Anything that is not a
    string with two halves, or a half that is not a number, gives (0, 0).
    """
    if not isinstance(timestamp, str) or TIMESTAMP_DELIMITER not in timestamp:
        return 0, 0

    parts = timestamp.split(TIMESTAMP_DELIMITER)
    start_ms = _parse_number(parts[0])
    end_ms = _parse_number(parts[1])
    if start_ms is None or end_ms is None:
        return 0, 0

    return ms_to_seconds(start_ms), ms_to_seconds(end_ms)


def _seconds(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return round_half_up(value)


def _resolve_times(utterance: Mapping) -> Tuple[float, float]:
    timestamp = utterance.get("timestamp")
    if isinstance(timestamp, str):
        return parse_timestamp(timestamp)
    # Already normalized: {"start": s, "end": s} or bare start_time/end_time
    if isinstance(timestamp, Mapping):
        return _seconds(timestamp.get("start")), _seconds(timestamp.get("end"))
    return _seconds(utterance.get("start_time")), _seconds(utterance.get("end_time"))


def _annotation(value: Any) -> Annotation:
    if isinstance(value, Mapping):
        value = value.get("raw")
    return {"raw": value if isinstance(value, str) else ""}


def _text_field(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def transform_utterance(utterance: Mapping) -> NormalizedUtterance:
    """
    Convert one raw utterance record into a NormalizedUtterance.

    Raises:
        TypeError: if the record is not a mapping
    """
    if not isinstance(utterance, Mapping):
        raise TypeError(f"utterance must be an object, got {type(utterance).__name__}")

    speaker = _text_field(utterance.get("speaker"), DEFAULT_SPEAKER)
    text = _text_field(utterance.get("text"), "")
    start_time, end_time = _resolve_times(utterance)

    result: NormalizedUtterance = {
        "speaker": speaker,
        "text": text,
        "start_time": start_time,
        "end_time": end_time,
        "morphology": _annotation(utterance.get("morphology")),
        "grammar": _annotation(utterance.get("grammar")),
        # Legacy response fields
        "tier": speaker,
        "value": text,
    }
    if start_time or end_time:
        result["timestamp"] = {"start": start_time, "end": end_time}
    return result


def transform_utterances(utterances: Any) -> List[NormalizedUtterance]:
    """Normalize a list of utterances, skipping (and logging) broken elements"""
    if not isinstance(utterances, list):
        return []

    normalized: List[NormalizedUtterance] = []
    for position, utterance in enumerate(utterances, start=1):
        try:
            normalized.append(transform_utterance(utterance))
        except Exception as e:
            logger.warning(
                f"[DatasetTransform] Skipping utterance #{position}: {e}",
                extra={
                    "event_type": "utterance_skipped",
                    "utterance_index": position,
                    "error_type": type(e).__name__,
                }
            )
    return normalized


# ==================== Dataset Assembly ====================

def count_participants(metadata: Any) -> int:
    ids = metadata.get("ID") if isinstance(metadata, Mapping) else None
    return len(ids) if isinstance(ids, list) else 0


def resolve_file_name(document: Mapping, dataset_id: str) -> str:
    """metadata.PID, then the legacy top-level file_name, then Dataset_<id>"""
    metadata = document.get("metadata")
    pid = metadata.get("PID") if isinstance(metadata, Mapping) else None
    name = pid or document.get("file_name")
    return str(name) if name else f"Dataset_{dataset_id}"


def _document_id(document: Mapping) -> str:
    raw_id = document.get("_id")
    if raw_id is None:
        raw_id = document.get("id")
    return "" if raw_id is None else str(raw_id)


def transform_dataset(document: Mapping) -> NormalizedDataset:
    """
    Build the NormalizedDataset for a stored document.

    The input is never modified; ``metadata`` is passed through as stored.
    Feeding the result back in yields the same result.
    """
    dataset_id = _document_id(document)
    metadata = document.get("metadata")

    return {
        "id": dataset_id,
        "file_name": resolve_file_name(document, dataset_id),
        "participant_count": count_participants(metadata),
        # Multi-participant recordings still surface a single PAR entry
        "participants": [parse_participant_info(metadata)],
        "utterances": transform_utterances(document.get("utterances")),
        "created_at": document.get("created_at"),
        "updated_at": document.get("updated_at"),
        "metadata": metadata,
    }


def transform_datasets(documents: List[Mapping]) -> List[NormalizedDataset]:
    return [transform_dataset(document) for document in documents]


__all__ = [
    "NormalizedParticipant",
    "NormalizedUtterance",
    "NormalizedDataset",
    "find_participant_descriptor",
    "parse_participant_info",
    "round_half_up",
    "ms_to_seconds",
    "parse_timestamp",
    "transform_utterance",
    "transform_utterances",
    "count_participants",
    "resolve_file_name",
    "transform_dataset",
    "transform_datasets",
]
