import pytest

from blamegame.services.errors import PlayerValidationError
from blamegame.services.kv_store import KEY_PLAYERS, InMemoryStore
from blamegame.services.player_roster import PlayerRoster


def _codes(fn):
    with pytest.raises(PlayerValidationError) as exc:
        fn()
    return exc.value.code


def test_roster_starts_with_two_blank_slots():
    roster = PlayerRoster(InMemoryStore())

    assert [p.id for p in roster.players()] == ["player1", "player2"]
    assert roster.active_players() == []


def test_rename_and_validation():
    store = InMemoryStore()
    roster = PlayerRoster(store)
    roster.rename_player("player1", "  Ana ")

    assert roster.active_players()[0].name == "Ana"
    assert store.get(KEY_PLAYERS)[0]["name"] == "Ana"

    assert _codes(lambda: roster.add_player("   ")) == "name_empty"
    assert _codes(lambda: roster.add_player("x" * 21)) == "name_too_long"
    assert _codes(lambda: roster.add_player("ANA")) == "name_duplicate"
    assert _codes(lambda: roster.rename_player("nope", "Ben")) == "player_not_found"

    # renommer avec son propre nom n'est pas un doublon
    assert roster.rename_player("player1", "ana").name == "ana"
    # vider un emplacement le rend inactif
    roster.rename_player("player1", "")
    assert roster.active_players() == []


def test_roster_limits():
    roster = PlayerRoster(InMemoryStore())
    assert _codes(lambda: roster.remove_player("player1")) == "roster_minimum"

    for i in range(8):
        roster.add_player(f"Player {i}")
    assert len(roster.players()) == 10
    assert _codes(lambda: roster.add_player("One too many")) == "roster_full"

    added = roster.players()[-1]
    roster.remove_player(added.id)
    assert len(roster.players()) == 9
    assert _codes(lambda: roster.remove_player(added.id)) == "player_not_found"

    roster.reset()
    assert len(roster.players()) == 2
