"""Message model for the APT method interface.

A message is a header line followed by ``Name: Value`` field lines and a
terminating blank line::

    600 URI Acquire
    URI: s3://my-bucket.s3.amazonaws.com/pool/main/h/hello_1.0_all.deb
    Filename: /var/cache/apt/archives/partial/hello_1.0_all.deb

APT parses the text positionally, so ``serialize()`` must reproduce this
layout exactly: one space after the status code, ``": "`` between name and
value, fields in their original order, and a trailing blank line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from apt_s3.errors import ParseError


class StatusCode(IntEnum):
    """Status codes used by the method interface."""

    CAPABILITIES = 100
    LOG = 101
    STATUS = 102
    URI_START = 200
    URI_DONE = 201
    URI_FAILURE = 400
    GENERAL_FAILURE = 401
    URI_ACQUIRE = 600
    CONFIGURATION = 601


@dataclass
class Header:
    """The first line of a message: status code and description."""

    status: int
    description: str = ""

    def __str__(self) -> str:
        return f"{self.status} {self.description}"


@dataclass
class Field:
    """A ``Name: Value`` line following the header."""

    name: str
    value: str = ""

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"


@dataclass
class Message:
    """A header plus an ordered list of fields."""

    header: Header
    fields: list[Field] = field(default_factory=list)

    @classmethod
    def from_text(cls, raw: str | bytes) -> Message:
        return parse(raw)

    def get_field_value(self, name: str) -> tuple[str, bool]:
        return get_field_value(self, name)

    def get_field_list(self, name: str) -> list[Field]:
        return get_field_list(self, name)

    def __str__(self) -> str:
        return serialize(self)


def parse(raw: str | bytes) -> Message:
    """Parse the text of one framed message.

    Args:
        raw: The message text, with or without its terminating blank line.

    Returns:
        The parsed Message.

    Raises:
        ParseError: If the message has fewer than two lines or the header
            does not start with an integer status code.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"message is not valid UTF-8: {e}") from e

    lines = raw.strip().split("\n")
    if sum(1 for line in lines if line.strip()) < 2:
        raise ParseError(f"message has too few lines: {raw.strip()!r}")

    header = _parse_header(lines[0])
    fields = [_parse_field(line) for line in lines[1:]]
    return Message(header=header, fields=fields)


def _parse_header(line: str) -> Header:
    """Parse a header line such as ``201 URI Done``."""
    tokens = line.split()
    try:
        status = int(tokens[0])
    except (IndexError, ValueError):
        raise ParseError(f"invalid status in header line: {line.strip()!r}")
    return Header(status=status, description=" ".join(tokens[1:]))


def _parse_field(line: str) -> Field:
    """Parse a field line. Never fails.

    Colons inside the value are kept, so
    ``Config-Item: Aptitude::Get-Root-Command=sudo:/usr/bin/sudo`` keeps its
    full value. A line without a colon becomes a field with an empty value.
    """
    name, _, value = line.strip().partition(":")
    return Field(name=name, value=value.strip())


def serialize(message: Message) -> str:
    """Render a Message in wire format, including the trailing blank line."""
    lines = [str(message.header)]
    lines.extend(str(f) for f in message.fields)
    return "\n".join(lines) + "\n\n"


def get_field_value(message: Message, name: str) -> tuple[str, bool]:
    """Return the value of the first field called ``name``.

    Returns:
        ``(value, True)`` on a match, ``("", False)`` otherwise.
    """
    for f in message.fields:
        if f.name == name:
            return f.value, True
    return "", False


def get_field_list(message: Message, name: str) -> list[Field]:
    """Return every field called ``name``, in message order."""
    return [f for f in message.fields if f.name == name]
