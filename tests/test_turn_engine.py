import pytest

from blamegame.models.blame import BlameEntry
from blamegame.models.content import Prompt
from blamegame.models.player import Player
from blamegame.services.errors import InconsistentTurnState, InvalidTurnAction
from blamegame.services.turn_engine import GameRound, TurnEngine, blame_counts_by_target, most_blamed


def _round(n=3):
    return GameRound([Prompt(id=f"q{i}", category_id="party", text=f"Who {i}?") for i in range(n)], ["party"])


def _players(*names):
    return [Player(id=f"p{i}", name=name) for i, name in enumerate(names)]


def test_blamed_player_becomes_current():
    engine = TurnEngine(_round(), _players("Ana", "Ben", "Cleo"), "nameBlame")
    first_key = engine.prompt_key()
    assert engine.current_player().name == "Ana"
    assert engine.blame_round.phase == "selecting"

    engine.select_target("Ana", "Cleo")
    assert engine.blame_round.phase == "reveal"
    assert engine.blame_round.current_blamed == "Cleo"

    finished = engine.acknowledge_reveal()

    assert finished is False
    assert engine.current_player().name == "Cleo"
    assert engine.game_round.cursor == 1
    assert engine.blame_round.phase == "selecting"
    assert engine.prompt_key() != first_key


def test_two_player_name_blame_rotation():
    engine = TurnEngine(_round(3), _players("P1", "P2"), "nameBlame")

    engine.select_target("P1", "P2")
    engine.acknowledge_reveal()
    assert engine.current_player().name == "P2"

    engine.select_target("P2", "P1")
    engine.acknowledge_reveal()
    assert engine.current_player().name == "P1"


def test_invalid_blames_are_refused():
    engine = TurnEngine(_round(), _players("Ana", "Ben", "Cleo"), "nameBlame")

    with pytest.raises(InvalidTurnAction):
        engine.select_target("Ana", "Ana")
    with pytest.raises(InvalidTurnAction):
        engine.select_target("Ana", "Nobody")
    with pytest.raises(InvalidTurnAction):
        engine.acknowledge_reveal()

    engine.select_target("Ana", "Ben")
    with pytest.raises(InvalidTurnAction):
        engine.select_target("Ana", "Cleo")
    assert len(engine.blame_log) == 1


def test_last_acknowledge_finishes_round():
    engine = TurnEngine(_round(1), _players("Ana", "Ben", "Cleo"), "nameBlame")
    engine.select_target("Ana", "Ben")

    assert engine.acknowledge_reveal() is True
    assert engine.finished is True
    assert engine.game_round.cursor == 0


def test_go_back_never_below_zero_and_keeps_log():
    engine = TurnEngine(_round(3), _players("Ana", "Ben", "Cleo"), "nameBlame")
    assert engine.go_to_previous_prompt() is False

    engine.select_target("Ana", "Cleo")
    engine.acknowledge_reveal()
    assert engine.current_index == 2

    assert engine.go_to_previous_prompt() is True
    assert engine.game_round.cursor == 0
    assert engine.current_index == 1
    assert engine.blame_round.phase == "selecting"
    assert len(engine.blame_log) == 1

    assert engine.go_to_previous_prompt() is False
    assert engine.game_round.cursor == 0


def test_blame_counts_and_most_blamed():
    log = [
        BlameEntry(from_player="x", to_player="a", prompt_text="q1"),
        BlameEntry(from_player="y", to_player="b", prompt_text="q2"),
        BlameEntry(from_player="z", to_player="a", prompt_text="q3"),
    ]

    assert blame_counts_by_target(log) == {"a": 2, "b": 1}
    assert most_blamed(log) == ["a"]


def test_most_blamed_returns_all_ties():
    log = [
        BlameEntry(from_player="x", to_player="b", prompt_text="q1"),
        BlameEntry(from_player="y", to_player="a", prompt_text="q2"),
    ]

    assert most_blamed(log) == ["b", "a"]
    assert most_blamed([]) == []


def test_classic_advance_wraps_around_players():
    engine = TurnEngine(_round(5), _players("Ana", "Ben"), "classic")
    seen = [engine.current_player().name]
    for _ in range(4):
        assert engine.advance_turn_classic() is False
        seen.append(engine.current_player().name)

    assert seen == ["Ana", "Ben", "Ana", "Ben", "Ana"]
    assert engine.advance_turn_classic() is True
    assert engine.finished is True


def test_pointer_is_taken_modulo_turn_order():
    engine = TurnEngine(_round(2), _players("Ana", "Ben"), "classic", current_index=5)

    assert engine.safe_index() == 1
    assert engine.current_player().name == "Ben"
    engine.advance_turn_classic()
    assert engine.current_player().name == "Ana"


def test_classic_advance_refused_in_name_blame():
    engine = TurnEngine(_round(), _players("Ana", "Ben", "Cleo"), "nameBlame")

    with pytest.raises(InvalidTurnAction):
        engine.advance_turn_classic()


def test_empty_turn_order():
    classic = TurnEngine(_round(2), [], "classic")
    assert classic.current_player() is None
    assert classic.advance_turn_classic() is False
    assert classic.game_round.cursor == 1

    blame = TurnEngine(_round(2), [], "nameBlame")
    with pytest.raises(InconsistentTurnState):
        blame.select_target("", "Ana")


def test_turn_order_is_a_copy():
    players = _players("Ana", "Ben", "Cleo")
    engine = TurnEngine(_round(), players, "nameBlame")
    players.append(Player(id="late", name="Dan"))

    assert engine.player_names() == ["Ana", "Ben", "Cleo"]


def test_round_requires_prompts():
    with pytest.raises(ValueError):
        GameRound([], [])
