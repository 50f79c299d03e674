"""
Request models for client operations.

Each operation a client can send has one model, selected by its `type`
field. Payloads are normalized here (names trimmed and capped, room codes
upper-cased) so the game code only ever sees well-formed requests.

Wire names are camelCase (chosenCardIds, cardIds, faceDownIndex); the
models expose snake_case attributes.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from config import config
from errors import ValidationError
from game import Zone


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


def _trim_name(value: Any) -> str:
    name = "" if value is None else str(value)
    return name.strip()[: config.MAX_NAME_LENGTH]


def _clean_name(value: Any) -> str:
    name = _trim_name(value)
    if not name:
        raise ValueError("Name required")
    return name


def _clean_code(value: Any) -> str:
    return ("" if value is None else str(value)).strip().upper()


PlayerName = Annotated[str, BeforeValidator(_clean_name)]
# Checked by the join handler once the room code resolves
TrimmedName = Annotated[str, BeforeValidator(_trim_name)]
RoomCode = Annotated[str, BeforeValidator(_clean_code)]


class CreateRoomRequest(_Request):
    type: Literal["room:create"] = "room:create"
    name: PlayerName = Field(default="", validate_default=True)


class JoinRoomRequest(_Request):
    type: Literal["room:join"] = "room:join"
    code: RoomCode = ""
    name: TrimmedName = Field(default="", validate_default=True)


class StartGameRequest(_Request):
    type: Literal["game:start"] = "game:start"
    code: RoomCode = ""


class SetFaceUpRequest(_Request):
    type: Literal["setup:setFaceUp"] = "setup:setFaceUp"
    code: RoomCode = ""
    chosen_card_ids: Optional[list[str]] = Field(default=None, alias="chosenCardIds")


class PlayCardsRequest(_Request):
    type: Literal["play:cards"] = "play:cards"
    code: RoomCode = ""
    source: Zone
    card_ids: Optional[list[str]] = Field(default=None, alias="cardIds")
    face_down_index: Optional[int] = Field(default=None, alias="faceDownIndex")


class PickupRequest(_Request):
    type: Literal["play:pickup"] = "play:pickup"
    code: RoomCode = ""


Request = Annotated[
    Union[
        CreateRoomRequest,
        JoinRoomRequest,
        StartGameRequest,
        SetFaceUpRequest,
        PlayCardsRequest,
        PickupRequest,
    ],
    Field(discriminator="type"),
]

REQUEST_TYPES = frozenset({
    "room:create",
    "room:join",
    "game:start",
    "setup:setFaceUp",
    "play:cards",
    "play:pickup",
})

_request_adapter: TypeAdapter = TypeAdapter(Request)


def _describe(exc: PydanticValidationError) -> str:
    """First validation problem as a short message."""
    error = exc.errors()[0]
    original = error.get("ctx", {}).get("error")
    if isinstance(original, ValueError):
        return str(original)
    field_name = ".".join(str(part) for part in error.get("loc", ())[1:])
    return f"{field_name}: {error['msg']}" if field_name else error["msg"]


def parse_request(data: Any) -> Request:
    """
    Validate a raw client message into its request model.

    Raises:
        ValidationError: Unknown operation or malformed payload.
    """
    if not isinstance(data, dict):
        raise ValidationError("Message must be an object")
    if data.get("type") not in REQUEST_TYPES:
        raise ValidationError(f"Unknown operation: {data.get('type')}")
    try:
        return _request_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from e
