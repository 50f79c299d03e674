"""
Client views of room and game state.

Three projections are sent after every mutation:
    - room:update   public room view, to every member
    - game:state    public room + public game view, to every member
    - game:private  public views plus the recipient's own cards, per seat

The pile and everyone's face-up cards are public. Hand contents and
face-down cards only appear in the owner's private view.
"""

from typing import Optional

from game import GameState, PlayerState
from pile import effective_top_rank
from room import Room


def _cards(cards) -> list[dict]:
    return [c.to_dict() for c in cards]


def public_room_view(room: Room) -> dict:
    return {
        "code": room.code,
        "hostSocketId": room.host_id,
        "phase": room.phase.value,
        "players": [{"id": m.id, "name": m.name} for m in room.members],
    }


def _public_player(member_id: str, name: str, player: Optional[PlayerState]) -> dict:
    if player is None:
        return {
            "id": member_id,
            "name": name,
            "handCount": 0,
            "faceDownCount": 0,
            "faceDownSlots": [],
            "faceUp": [],
        }
    return {
        "id": member_id,
        "name": name,
        "handCount": len(player.hand),
        "faceDownCount": len(player.face_down),
        "faceDownSlots": player.face_down.occupancy(),
        "faceUp": _cards(player.face_up),
    }


def public_game_view(room: Room) -> Optional[dict]:
    """
    Game state visible to every member.

    Returns:
        Dict of phase, turn, deck/pile info, per-member summary and the
        end-of-game result, or None before the game starts.
    """
    game: Optional[GameState] = room.game
    if game is None:
        return None

    top = effective_top_rank(game.pile)
    return {
        "phase": room.phase.value,
        "currentPlayerId": game.current_player_id,
        "deckCount": len(game.deck),
        "pile": _cards(game.pile),
        "pileCount": len(game.pile),
        "burnedCount": len(game.burned),
        "effectiveTop": top.value if top else None,
        "players": [
            _public_player(m.id, m.name, game.players.get(m.id))
            for m in room.members
        ],
        "winnerId": game.winner_id,
        "loserId": game.loser_id,
        "finished": list(game.finished),
        "forfeited": list(game.forfeited),
    }


def private_player_view(game: GameState, player_id: str) -> Optional[dict]:
    """The recipient's own PlayerState with every card shown."""
    player = game.players.get(player_id)
    if player is None:
        return None
    return {
        "id": player.id,
        "name": player.name,
        "hand": _cards(player.hand),
        "faceUp": _cards(player.face_up),
        "faceDown": [c.to_dict() if c else None for c in player.face_down.slots()],
        "stage": player.stage.value,
        "requiredZone": game.required_zone_for(player_id).value,
    }


def private_view(room: Room, player_id: str, game_public: Optional[dict] = None) -> Optional[dict]:
    """Payload of a game:private event, or None if the member has no seat."""
    if room.game is None:
        return None
    you = private_player_view(room.game, player_id)
    if you is None:
        return None
    return {
        "room": public_room_view(room),
        "you": you,
        "gamePublic": game_public if game_public is not None else public_game_view(room),
    }
