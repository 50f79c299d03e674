"""Request models for the Shithead server."""

from .requests import (
    CreateRoomRequest,
    JoinRoomRequest,
    PickupRequest,
    PlayCardsRequest,
    Request,
    SetFaceUpRequest,
    StartGameRequest,
    parse_request,
)

__all__ = [
    "CreateRoomRequest",
    "JoinRoomRequest",
    "PickupRequest",
    "PlayCardsRequest",
    "Request",
    "SetFaceUpRequest",
    "StartGameRequest",
    "parse_request",
]
