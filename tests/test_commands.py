from unittest import mock

import pytest

from moviecat.commands import (
    CommandError,
    CommandInterpreter,
    parse_birth_year,
    parse_list_args,
    parse_release_year,
    parse_runtime,
)
from moviecat.console import Console
from moviecat.main import main
from moviecat.services.listing import MovieFilter, MovieLister, Ordering


class ScriptedConsole(Console):
    """Feeds canned answers and records everything printed."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []
        self.output = []
        super().__init__(reader=self._read, writer=self.output.append)

    def _read(self, prompt):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


@pytest.fixture
def run_session(session_factory):
    def _run(*answers):
        console = ScriptedConsole(answers)
        CommandInterpreter(session_factory, console).run()
        return console

    return _run


def test_parse_list_args_collects_flags():
    request = parse_list_args(["-v", "-t", "^The", "-d", "Nolan", "-a", "Hardy", "-ld"])
    assert request.verbose is True
    assert request.filters == MovieFilter(title="^The", director="Nolan", actor="Hardy")
    assert request.ordering is Ordering.LENGTH_DESC


def test_parse_list_args_defaults():
    request = parse_list_args([])
    assert request.verbose is False
    assert request.filters == MovieFilter()
    assert request.ordering is Ordering.TITLE


@pytest.mark.parametrize(
    "args, message",
    [
        (["-la", "-ld"], "Both -la and -ld"),
        (["-ld", "-la"], "Both -la and -ld"),
        (["-t"], "Missing regex for -t"),
        (["-x"], "Unknown flag: -x"),
        (["-a", "(Hardy"], "Invalid regular expression"),
    ],
)
def test_parse_list_args_rejects(args, message):
    with pytest.raises(CommandError) as excinfo:
        parse_list_args(args)
    assert message in str(excinfo.value)


@pytest.mark.parametrize("raw, minutes", [("01:30", 90), ("2:05", 125), ("00:00", 0), (" 10:59 ", 659)])
def test_parse_runtime(raw, minutes):
    assert parse_runtime(raw) == minutes


@pytest.mark.parametrize("raw", ["90", "1:60", "1:5", "ab:cd", "-1:30", ""])
def test_parse_runtime_rejects(raw):
    with pytest.raises(ValueError):
        parse_runtime(raw)


def test_parse_years():
    assert parse_birth_year("") is None
    assert parse_birth_year("1974") == 1974
    assert parse_release_year("2020") == 2020
    for bad in ("74", "abc", "20000"):
        with pytest.raises(ValueError):
            parse_birth_year(bad)
    with pytest.raises(ValueError):
        parse_release_year("0")


def test_add_list_and_guarded_delete_end_to_end(run_session, counts):
    console = run_session(
        "a -p", "Ann Director", "",
        "a -m", "Test Film", "01:30", "Ann Director", "2020", "exit",
        "l",
        "d -p", "Ann Director",
        "exit",
    )

    assert "Successfully added person: Ann Director (Birth Year: unknown)" in console.output
    assert "Successfully added movie: Test Film" in console.output
    assert "Test Film by Ann Director in 2020, 01:30" in console.output
    assert (
        "Cannot delete 'Ann Director' as they are a director of one or more movies."
        in console.output
    )
    assert console.output[-1] == "Goodbye!"
    totals = counts()
    assert totals.movies == 1
    assert totals.people == 1


def test_add_movie_reprompts_bad_input(run_session, counts):
    console = run_session(
        "a -p", "Ann Director", "1980",
        "a -p", "Tom Hardy", "77", "1977",
        "a -m", "Test Film", "1h30", "01:30", "Nobody", "Ann Director", "soon", "2020",
        "Ghost", "Tom Hardy", "Tom Hardy", "",
        "l -v",
    )

    assert "Error: Invalid year of birth. Please enter a 4-digit year." in console.output
    assert "- Bad input format (hh:mm), try again!" in console.output
    assert "- We could not find 'Nobody', try again!" in console.output
    assert "- Bad input format (year), try again!" in console.output
    assert "- We could not find 'Ghost', try again!" in console.output
    # the session ends at end of input: a blank line, then "Goodbye!"
    assert console.output[-5:-2] == [
        "Test Film by Ann Director in 2020, 01:30",
        "    Starring:",
        "        - Tom Hardy at age 43",
    ]
    assert counts().cast_links == 1


def test_add_existing_person_reports_and_keeps_year(run_session, session_factory, writer):
    console = run_session("a -p", "Elliot Page", "1987", "a -p", "Elliot Page", "2000")

    assert "Person 'Elliot Page' already exists in the database." in console.output
    with session_factory() as session:
        assert writer.find_person(session, "Elliot Page").birth_year == 1987


def test_duplicate_movie_is_reported(run_session, counts):
    movie = ("a -m", "Test Film", "01:30", "Ann Director", "2020", "exit")
    console = run_session("a -p", "Ann Director", "", *movie, *movie)

    assert "Movie 'Test Film' by Ann Director already exists." in console.output
    assert counts().movies == 1


def test_delete_actor_reports_memberships(catalog, counts):
    console = ScriptedConsole(["d -p", "Tom Hardy"])
    CommandInterpreter(catalog, console).run()

    assert console.output[1:5] == [
        "Successfully deleted 'Tom Hardy' from the database.",
        "They were removed from the following movies:",
        "  - Dunkirk (2017)",
        "  - Inception (2010)",
    ]
    assert counts().cast_links == 3


def test_delete_unknown_person(catalog, counts):
    before = counts()
    console = ScriptedConsole(["d -p", "Nobody"])
    CommandInterpreter(catalog, console).run()

    assert "Person 'Nobody' not found in the database." in console.output
    assert counts() == before


def test_quoted_filters_reach_the_query(catalog):
    console = ScriptedConsole(['l -d "Christopher Nolan" -ld'])
    CommandInterpreter(catalog, console).run()

    assert console.output[1:3] == [
        "Inception by Christopher Nolan in 2010, 02:28",
        "Dunkirk by Christopher Nolan in 2017, 01:46",
    ]


def test_conflicting_orderings_run_no_query(catalog):
    console = ScriptedConsole(["l -la -ld"])
    with mock.patch.object(MovieLister, "render") as render:
        CommandInterpreter(catalog, console).run()

    render.assert_not_called()
    assert "Error: Both -la and -ld cannot be used together." in console.output


def test_unknown_commands(session_factory):
    console = ScriptedConsole(["x", "a", "a -q", "d -m", "l -z", "   "])
    CommandInterpreter(session_factory, console).run()

    assert console.output[1:7] == [
        "Unknown command: x",
        "Unknown or unsupported 'a' command.",
        "Unknown or unsupported 'a' command.",
        "Unknown or unsupported 'd' command.",
        "Unknown flag: -z",
        "Invalid command. Please enter a valid command.",
    ]


def test_empty_listing_and_help(session_factory):
    console = ScriptedConsole(["l", "help"])
    CommandInterpreter(session_factory, console).run()

    assert "No movies found." in console.output
    assert any(line.startswith("Available commands:") for line in console.output)


def test_execute_returns_false_on_exit(session_factory):
    interpreter = CommandInterpreter(session_factory, ScriptedConsole([]))
    assert interpreter.execute("exit") is False
    assert interpreter.execute("l") is True


def test_main_bootstraps_and_runs_without_api_key(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'main.db'}")
    console = ScriptedConsole(["a -p", "Ann Director", "", "l"])

    with mock.patch("moviecat.main.seed_catalog") as seed:
        assert main(console) == 0

    seed.assert_not_called()
    assert console.output[0] == "Welcome to the Movie Console Application!"
    assert "No movies found." in console.output


def test_main_exits_when_schema_bootstrap_fails(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'missing' / 'main.db'}")
    assert main(ScriptedConsole([])) == 1


def test_main_exits_when_database_driver_is_missing(monkeypatch):
    def missing_driver(url):
        raise ModuleNotFoundError("No module named 'psycopg2'")

    monkeypatch.setattr("moviecat.main.create_store_engine", missing_driver)
    assert main(ScriptedConsole([])) == 1


class OpenSessionCounter:
    """Wraps a session factory and tracks how many sessions are open."""

    def __init__(self, factory):
        self.factory = factory
        self.open = 0

    def __call__(self):
        session = self.factory()
        self.open += 1
        close = session.close

        def _close():
            self.open -= 1
            close()

        session.close = _close
        return session


def test_add_movie_holds_no_session_while_prompting(session_factory, counts):
    counter = OpenSessionCounter(session_factory)
    open_at_prompt = []

    class WatchingConsole(ScriptedConsole):
        def _read(self, prompt):
            open_at_prompt.append(counter.open)
            return super()._read(prompt)

    console = WatchingConsole([
        "a -p", "Ann Director", "",
        "a -m", "Test Film", "01:30", "Nobody", "Ann Director", "2020",
        "Ghost", "Ann Director", "",
    ])
    CommandInterpreter(counter, console).run()

    assert "Successfully added movie: Test Film" in console.output
    assert open_at_prompt and set(open_at_prompt) == {0}
    assert counter.open == 0
    totals = counts()
    assert totals.movies == 1
    assert totals.cast_links == 1
