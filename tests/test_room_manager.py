"""Tests for the room registry and lobby operations."""

import pytest
from coupsim.core.config import GameConfig
from coupsim.core.enums import Difficulty, GamePhase
from coupsim.core.errors import LobbyError
from coupsim.core.room_manager import ROOM_CODE_ALPHABET, Room, RoomManager, generate_room_code
from coupsim.core.scheduler import ManualScheduler


@pytest.fixture
def manager():
    return RoomManager(scheduler_factory=ManualScheduler)


@pytest.fixture
def seat(manager):
    return manager.create_room("Alice")


def test_room_codes():
    code = generate_room_code()
    assert len(code) == 6
    assert all(c in ROOM_CODE_ALPHABET for c in code)


def test_create_room_seats_host(manager, seat):
    room = seat.room
    assert room.code in manager.rooms
    assert room.host_id == seat.player.id
    assert seat.player.is_host
    assert room.player_for_token(seat.token) is seat.player
    assert room.phase is GamePhase.LOBBY


def test_create_room_requires_name(manager):
    with pytest.raises(LobbyError):
        manager.create_room("   ")


def test_join_and_lookup_is_case_insensitive(manager, seat):
    joined = manager.join_room(seat.room.code.lower(), "Bob")
    assert joined.room is seat.room
    assert [p.name for p in seat.room.players] == ["Alice", "Bob"]
    assert joined.token != seat.token


def test_unknown_room(manager):
    with pytest.raises(LobbyError) as exc:
        manager.get_room("NOPE00")
    assert exc.value.status_code == 404


def test_duplicate_name_rejected(manager, seat):
    with pytest.raises(LobbyError, match="name already taken"):
        manager.join_room(seat.room.code, "Alice")


def test_full_room_rejected(manager):
    seat = manager.create_room("Alice", GameConfig(max_players=2))
    manager.join_room(seat.room.code, "Bob")
    with pytest.raises(LobbyError, match="full"):
        manager.join_room(seat.room.code, "Carol")
    with pytest.raises(LobbyError, match="full"):
        manager.add_bot(seat.room.code)


def test_cannot_join_game_in_progress(manager, seat):
    code = seat.room.code
    manager.add_bot(code)
    manager.start_game(code, seat.player.id)
    with pytest.raises(LobbyError, match="in progress"):
        manager.join_room(code, "Bob")


def test_add_and_remove_bots(manager, seat):
    code = seat.room.code
    first = manager.add_bot(code, Difficulty.HARD, requester_id=seat.player.id)
    second = manager.add_bot(code)

    assert first.is_bot and first.name == "Bot 1"
    assert second.name == "Bot 2"
    assert set(seat.room.driver.bots) == {first.id, second.id}
    assert seat.room.driver.bots[first.id].difficulty is Difficulty.HARD

    manager.remove_bot(code, first.id, requester_id=seat.player.id)
    assert seat.room.get_player(first.id) is None
    assert first.id not in seat.room.driver.bots


def test_only_host_manages_bots(manager, seat):
    bob = manager.join_room(seat.room.code, "Bob")
    with pytest.raises(LobbyError) as exc:
        manager.add_bot(seat.room.code, requester_id=bob.player.id)
    assert exc.value.status_code == 403


def test_remove_unknown_bot(manager, seat):
    with pytest.raises(LobbyError) as exc:
        manager.remove_bot(seat.room.code, seat.player.id)
    assert exc.value.status_code == 404


def test_start_requires_host(manager, seat):
    bob = manager.join_room(seat.room.code, "Bob")
    with pytest.raises(LobbyError) as exc:
        manager.start_game(seat.room.code, bob.player.id)
    assert exc.value.status_code == 403


def test_start_requires_two_players(manager, seat):
    with pytest.raises(LobbyError) as exc:
        manager.start_game(seat.room.code, seat.player.id)
    assert exc.value.status_code == 400
    assert seat.room.phase is GamePhase.LOBBY


def test_start_deals_hands(manager, seat):
    code = seat.room.code
    manager.join_room(code, "Bob")
    manager.add_bot(code)
    room = manager.start_game(code, seat.player.id)

    assert room.phase is GamePhase.GAME
    for player in room.players:
        assert len(player.active_influences) == 2
        assert player.coins == 2
    with pytest.raises(LobbyError, match="in progress"):
        manager.start_game(code, seat.player.id)


def test_host_promoted_when_host_leaves(manager, seat):
    bob = manager.join_room(seat.room.code, "Bob")
    manager.leave_room(seat.room.code, seat.player.id)

    assert seat.room.host_id == bob.player.id
    assert bob.player.is_host
    assert seat.room.player_for_token(seat.token) is None


def test_room_closes_when_last_human_leaves(manager, seat):
    code = seat.room.code
    manager.add_bot(code)
    manager.leave_room(code, seat.player.id)

    assert code not in manager.rooms
    assert seat.room.engine.bot_driver is None


def test_leaving_mid_game_forfeits(manager, seat):
    code = seat.room.code
    bob = manager.join_room(code, "Bob")
    carol = manager.join_room(code, "Carol")
    manager.start_game(code, seat.player.id)

    manager.leave_room(code, carol.player.id)

    room = seat.room
    assert carol.player.is_eliminated
    assert carol.player.id in room.departed
    assert room.phase is GamePhase.GAME
    assert room.humans == [seat.player, bob.player]

    with pytest.raises(LobbyError):
        manager.leave_room(code, carol.player.id)


def test_departed_seats_pruned_on_next_start(manager, seat):
    code = seat.room.code
    bob = manager.join_room(code, "Bob")
    carol = manager.join_room(code, "Carol")
    manager.start_game(code, seat.player.id)
    manager.leave_room(code, carol.player.id)
    manager.leave_room(code, bob.player.id)

    room = seat.room
    assert room.phase is GamePhase.LOBBY
    assert room.engine.state.winner_id == seat.player.id

    manager.add_bot(code)
    manager.start_game(code, seat.player.id)
    assert [p.name for p in room.players] == ["Alice", "Bot 1"]
    assert room.departed == set()


def test_set_connected(manager, seat):
    manager.set_connected(seat.room.code, seat.player.id, False)
    assert not seat.player.connected
    manager.set_connected(seat.room.code, seat.player.id, True)
    assert seat.player.connected


def test_room_summary(manager, seat):
    summary = seat.room.to_dict()
    assert summary["code"] == seat.room.code
    assert summary["phase"] == "lobby"
    assert summary["players"][0]["name"] == "Alice"
    assert summary["settings"]["max_players"] == 10


def test_bot_counter_is_internal(manager, seat):
    manager.add_bot(seat.room.code)
    assert "_bot_counter" not in repr(seat.room)
    with pytest.raises(TypeError):
        Room(code="ABC123", engine=seat.room.engine, driver=seat.room.driver, _bot_counter=5)
