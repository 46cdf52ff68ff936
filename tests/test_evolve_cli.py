from pathlib import Path

from galapagotchi.cli.evolve import main
from galapagotchi.cli.new_island import main as new_island_main
from galapagotchi.content.storage import JsonStorage

FAST_ARGS = [
    "--population",
    "3",
    "--instance-max",
    "3",
    "--generation-ticks",
    "20",
    "--tick-quantum",
    "10",
    "--joint-count-max",
    "24",
]


def test_evolve_runs_generations_and_stores_journey(tmp_path: Path, capsys) -> None:
    assert new_island_main([str(tmp_path), "home", "--seed", "1"]) == 0
    capsys.readouterr()

    exit_code = main([str(tmp_path), "home", "--generations", "2", "--seed", "4", *FAST_ARGS])

    output = capsys.readouterr().out
    assert exit_code == 0
    lines = output.splitlines()
    assert lines[0].startswith("header ")
    assert lines[1].startswith("generation=0 population=3 ")
    assert lines[2].startswith("generation=1 population=3 ")
    assert "improved=true" in lines[1]
    assert lines[-1].startswith("ok ")
    assert "free_slots=3" in lines[-1]

    island = JsonStorage(tmp_path).load_island("home")
    home, target = island.hexalots
    assert home.claimed
    assert not target.claimed
    assert home.journey is not None
    assert home.journey.to_ids() == [home.id, target.id]


def test_evolve_reuses_the_stored_journey(tmp_path: Path, capsys) -> None:
    assert new_island_main([str(tmp_path), "home"]) == 0
    capsys.readouterr()
    assert main([str(tmp_path), "home", "--toward", "2", *FAST_ARGS]) == 0
    first_target = capsys.readouterr().out.splitlines()[0].split("target=")[1].split()[0]

    assert main([str(tmp_path), "home", "--toward", "5", *FAST_ARGS]) == 0
    second_target = capsys.readouterr().out.splitlines()[0].split("target=")[1].split()[0]

    assert first_target == second_target
    assert len(JsonStorage(tmp_path).load_island("home").hexalots) == 2


def test_evolve_reports_missing_island(tmp_path: Path, capsys) -> None:
    exit_code = main([str(tmp_path), "nowhere", *FAST_ARGS])

    assert exit_code == 1
    assert "island does not exist" in capsys.readouterr().err


def test_evolve_rejects_unknown_home(tmp_path: Path, capsys) -> None:
    assert new_island_main([str(tmp_path), "home"]) == 0
    capsys.readouterr()

    exit_code = main([str(tmp_path), "home", "--home", "missing", *FAST_ARGS])

    assert exit_code == 1
    assert "unknown home hexalot" in capsys.readouterr().err
