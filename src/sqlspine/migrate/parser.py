"""Migration file parser.

Splits the text of one ``.sql`` migration file into Up and Down
statement lists::

    -- +migrate Up
    CREATE TABLE people (id int);

    -- +migrate Down
    DROP TABLE people;

Rules
-----
- ``-- +migrate Up`` / ``-- +migrate Down`` open a section.  Adding
  ``notransaction`` (``-- +migrate Up notransaction``) runs that
  section's statements outside a transaction.
- A statement ends on a line whose code (ignoring a trailing ``--``
  comment) ends with ``;``.
- ``-- +migrate StatementBegin`` / ``-- +migrate StatementEnd`` wrap a
  statement with inner semicolons, such as a function body; the whole
  block is one statement, comments included.
- Other comment lines and blank lines between statements are dropped.
  Anything before the first section is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlspine.core.errors import ParseError
from sqlspine.migrate.models import Direction, Migration

DIRECTIVE_PREFIX = "-- +migrate"
OPTION_NO_TRANSACTION = "notransaction"


@dataclass
class ParsedMigration:
    """Statements and options read from one migration file."""

    up: list[str] = field(default_factory=list)
    down: list[str] = field(default_factory=list)
    disable_transaction_up: bool = False
    disable_transaction_down: bool = False


def _ends_with_semicolon(line: str) -> bool:
    """True if the last word before a trailing ``--`` comment ends with ``;``.

    Only a word *starting* with ``--`` opens a comment, so ``'a--b';``
    still terminates its statement.
    """
    last = ""
    for word in line.split():
        if word.startswith("--"):
            break
        last = word
    return last.endswith(";")


def _is_comment(stripped: str) -> bool:
    return stripped.startswith("--")


def parse_migration(text: str, name: str = "<string>") -> ParsedMigration:
    """Parse migration file text.

    Raises:
        ParseError: On malformed directives, unterminated statements or a
            file without an Up section.
    """
    result = ParsedMigration()
    direction: Direction | None = None
    seen_up = False
    in_block = False
    buffer: list[str] = []

    def emit(lineno: int) -> None:
        statement = "\n".join(buffer).strip()
        buffer.clear()
        if not statement:
            return
        if direction is None:
            raise ParseError(f"{name}:{lineno}: statement outside of an Up/Down section", line=lineno)
        target = result.up if direction == Direction.UP else result.down
        target.append(statement)

    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()

        if stripped.startswith(DIRECTIVE_PREFIX):
            words = stripped[len(DIRECTIVE_PREFIX):].split()
            if not words:
                raise ParseError(f"{name}:{lineno}: empty +migrate directive", line=lineno)
            command, options = words[0], words[1:]

            if command in ("Up", "Down"):
                if in_block:
                    raise ParseError(
                        f"{name}:{lineno}: +migrate {command} inside StatementBegin block", line=lineno
                    )
                if buffer:
                    raise ParseError(
                        f"{name}:{lineno}: statement before +migrate {command} is missing its ';'",
                        line=lineno,
                    )
                unknown = [o for o in options if o != OPTION_NO_TRANSACTION]
                if unknown:
                    raise ParseError(f"{name}:{lineno}: unknown option(s) {unknown}", line=lineno)
                direction = Direction.UP if command == "Up" else Direction.DOWN
                no_tx = OPTION_NO_TRANSACTION in options
                if direction == Direction.UP:
                    seen_up = True
                    result.disable_transaction_up = no_tx
                else:
                    result.disable_transaction_down = no_tx
            elif command == "StatementBegin":
                if in_block:
                    raise ParseError(f"{name}:{lineno}: nested StatementBegin", line=lineno)
                if buffer:
                    raise ParseError(
                        f"{name}:{lineno}: statement before StatementBegin is missing its ';'",
                        line=lineno,
                    )
                in_block = True
            elif command == "StatementEnd":
                if not in_block:
                    raise ParseError(f"{name}:{lineno}: StatementEnd without StatementBegin", line=lineno)
                in_block = False
                emit(lineno)
            else:
                raise ParseError(f"{name}:{lineno}: unknown directive +migrate {command}", line=lineno)
            continue

        if in_block:
            buffer.append(line)
            continue

        if direction is None or not stripped or _is_comment(stripped):
            continue

        buffer.append(line)
        if _ends_with_semicolon(line):
            emit(lineno)

    if in_block:
        raise ParseError(f"{name}: StatementBegin without matching StatementEnd")
    if buffer:
        raise ParseError(f"{name}: last statement is missing its ';'")
    if not seen_up:
        raise ParseError(f"{name}: no '-- +migrate Up' section found")
    return result


def migration_from_text(migration_id: str, text: str) -> Migration:
    """Parse ``text`` and wrap it as a :class:`Migration` named ``migration_id``."""
    parsed = parse_migration(text, name=migration_id)
    return Migration(
        id=migration_id,
        up=parsed.up,
        down=parsed.down,
        disable_transaction_up=parsed.disable_transaction_up,
        disable_transaction_down=parsed.disable_transaction_down,
    )


__all__ = [
    "DIRECTIVE_PREFIX",
    "ParsedMigration",
    "parse_migration",
    "migration_from_text",
]
