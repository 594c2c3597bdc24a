"""Interpret REPL command lines and run them against the catalog."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from moviecat.console import Console
from moviecat.db import session_scope
from moviecat.services.catalog import (
    MAX_BIRTH_YEAR,
    MIN_BIRTH_YEAR,
    CatalogError,
    CatalogWriter,
)
from moviecat.services.listing import InvalidPattern, MovieFilter, MovieLister, Ordering, check_pattern
from moviecat.tokenizer import tokenize


logger = logging.getLogger(__name__)

T = TypeVar("T")

HELP_TEXT = (
    "Available commands:\n"
    "  l [-v] [-t <regex>] [-d <regex>] [-a <regex>] [-la | -ld]\n"
    "      list movies; -v shows the cast, -t/-d/-a filter by title,\n"
    "      director or actor, -la/-ld order by length ascending/descending\n"
    "  a -p    add a person\n"
    "  a -m    add a movie\n"
    "  d -p    delete a person\n"
    "  exit    leave the program"
)

_PATTERN_FLAGS = {"-t": "title", "-d": "director", "-a": "actor"}
_RUNTIME = re.compile(r"(\d{1,3}):(\d{2})")


class CommandError(Exception):
    """A command line the interpreter refuses to run."""


@dataclass(slots=True)
class ListRequest:
    verbose: bool = False
    filters: MovieFilter = field(default_factory=MovieFilter)
    ordering: Ordering = Ordering.TITLE


def parse_list_args(args: list[str]) -> ListRequest:
    """Turn the flags of an ``l`` command into a listing request."""

    verbose = False
    patterns: dict[str, str] = {}
    ordering = Ordering.TITLE
    i = 0
    while i < len(args):
        flag = args[i]
        if flag == "-v":
            verbose = True
        elif flag in _PATTERN_FLAGS:
            if i + 1 >= len(args):
                raise CommandError(f"Error: Missing regex for {flag}.")
            try:
                patterns[_PATTERN_FLAGS[flag]] = check_pattern(args[i + 1])
            except InvalidPattern as exc:
                raise CommandError(f"Error: {exc}") from exc
            i += 1
        elif flag in ("-la", "-ld"):
            wanted = Ordering.LENGTH_ASC if flag == "-la" else Ordering.LENGTH_DESC
            if ordering not in (Ordering.TITLE, wanted):
                raise CommandError("Error: Both -la and -ld cannot be used together.")
            ordering = wanted
        else:
            raise CommandError(f"Unknown flag: {flag}")
        i += 1
    return ListRequest(verbose=verbose, filters=MovieFilter(**patterns), ordering=ordering)


def parse_runtime(text: str) -> int:
    """Minutes from an ``hh:mm`` length."""
    match = _RUNTIME.fullmatch(text.strip())
    if not match:
        raise ValueError(f"expected hh:mm, got {text!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes >= 60:
        raise ValueError(f"minutes out of range in {text!r}")
    return hours * 60 + minutes


def parse_release_year(text: str) -> int:
    year = int(text)
    if year <= 0:
        raise ValueError(f"release year must be positive, got {year}")
    return year


def parse_birth_year(text: str) -> int | None:
    if not text:
        return None
    year = int(text)
    if not MIN_BIRTH_YEAR <= year <= MAX_BIRTH_YEAR:
        raise ValueError(f"birth year must have four digits, got {year}")
    return year


def _require_text(text: str) -> str:
    if not text:
        raise ValueError("empty input")
    return text


class CommandInterpreter:
    """Dispatches one command line at a time."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        console: Console,
        *,
        writer: CatalogWriter | None = None,
        lister: MovieLister | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.console = console
        self.writer = writer or CatalogWriter()
        self.lister = lister or MovieLister()
        self._handlers: dict[str, Callable[[list[str]], None]] = {
            "l": self._list,
            "a": self._add,
            "d": self._delete,
            "h": self._help,
            "help": self._help,
        }

    def run(self) -> None:
        """Read and execute commands until ``exit`` or end of input."""

        self.console.say("Welcome to the Movie Console Application!")
        while True:
            try:
                line = self.console.ask("> ")
                if not self.execute(line):
                    break
            except EOFError:
                self.console.say()
                break
        self.console.say("Goodbye!")

    def execute(self, line: str) -> bool:
        """Run one line; returns False when the session should end."""

        args = tokenize(line)
        if not args:
            self.console.say("Invalid command. Please enter a valid command.")
            return True

        command, rest = args[0], args[1:]
        if command == "exit":
            return False
        handler = self._handlers.get(command)
        if handler is None:
            self.console.say(f"Unknown command: {command}")
            return True

        try:
            handler(rest)
        except (CommandError, CatalogError) as exc:
            self.console.say(str(exc))
        except SQLAlchemyError as exc:
            logger.exception("Database error while running %r", line)
            self.console.say(f"Database error: {exc.__class__.__name__}, nothing was changed.")
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def _list(self, args: list[str]) -> None:
        request = parse_list_args(args)
        shown = 0
        with session_scope(self.session_factory) as session:
            for text in self.lister.render(
                session, request.filters, request.ordering, verbose=request.verbose
            ):
                self.console.say(text)
                shown += 1
        if not shown:
            self.console.say("No movies found.")

    def _add(self, args: list[str]) -> None:
        if args[:1] == ["-p"]:
            self._add_person()
        elif args[:1] == ["-m"]:
            self._add_movie()
        else:
            raise CommandError("Unknown or unsupported 'a' command.")

    def _delete(self, args: list[str]) -> None:
        if args[:1] != ["-p"]:
            raise CommandError("Unknown or unsupported 'd' command.")
        self._delete_person()

    def _help(self, _args: list[str]) -> None:
        self.console.say(HELP_TEXT)

    # ------------------------------------------------------------------
    # Guided prompts
    # ------------------------------------------------------------------
    def _ask_until(self, prompt: str, parse: Callable[[str], T], error: str) -> T:
        while True:
            raw = self.console.ask(prompt)
            try:
                return parse(raw)
            except ValueError:
                self.console.say(error)

    def _lookup_person_id(self, name: str) -> int | None:
        with session_scope(self.session_factory) as session:
            person = self.writer.find_person(session, name)
            return None if person is None else person.id

    def _ask_person_id(self, prompt: str) -> int:
        while True:
            name = self.console.ask(prompt)
            person_id = self._lookup_person_id(name)
            if person_id is not None:
                return person_id
            self.console.say(f"- We could not find '{name}', try again!")

    def _add_person(self) -> None:
        name = self.console.ask("Enter person's name: ")
        if not name:
            raise CommandError("Error: Name cannot be empty. Please try again.")
        birth_year = self._ask_until(
            "Enter year of birth (or press Enter to skip): ",
            parse_birth_year,
            "Error: Invalid year of birth. Please enter a 4-digit year.",
        )

        with session_scope(self.session_factory) as session:
            result = self.writer.add_person(session, name, birth_year)
            created = result.created

        if created:
            shown_year = birth_year if birth_year is not None else "unknown"
            self.console.say(f"Successfully added person: {name} (Birth Year: {shown_year})")
        else:
            self.console.say(f"Person '{name}' already exists in the database.")

    def _add_movie(self) -> None:
        # Names are resolved in short lookups; no transaction stays open
        # while waiting on the user.
        title = self._ask_until("Title: ", _require_text, "- Title cannot be empty, try again!")
        length = self._ask_until("Length: ", parse_runtime, "- Bad input format (hh:mm), try again!")
        director_id = self._ask_person_id("Director: ")
        year = self._ask_until(
            "Released in: ", parse_release_year, "- Bad input format (year), try again!"
        )
        self.console.say("Starring:")
        actor_ids: list[int] = []
        while True:
            name = self.console.ask("> ")
            if not name or name.lower() == "exit":
                break
            actor_id = self._lookup_person_id(name)
            if actor_id is None:
                self.console.say(f"- We could not find '{name}', try again!")
                continue
            actor_ids.append(actor_id)

        with session_scope(self.session_factory) as session:
            movie = self.writer.insert_movie(
                session,
                title=title,
                director_id=director_id,
                release_year=year,
                length_minutes=length,
            )
            for actor_id in actor_ids:
                self.writer.link_actor(session, movie.id, actor_id)

        self.console.say(f"Successfully added movie: {title}")

    def _delete_person(self) -> None:
        name = self.console.ask("Enter the name of the person to delete: ")
        if not name:
            raise CommandError("Error: Name cannot be empty.")

        with session_scope(self.session_factory) as session:
            report = self.writer.delete_person(session, name)

        self.console.say(f"Successfully deleted '{report.name}' from the database.")
        if report.memberships:
            self.console.say("They were removed from the following movies:")
            for membership in report.memberships:
                self.console.say(f"  - {membership}")
        else:
            self.console.say("They were not associated with any movies.")
