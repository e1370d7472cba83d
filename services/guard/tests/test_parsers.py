"""Tests for exit list parsing."""

import pytest

from common import ParseError
from guard.parsers import ExitListParser


def test_exit_list_parser_valid_entries():
    parser = ExitListParser("tor_exit_list")

    content = """
# Tor bulk exit list
185.220.101.7
199.249.230.81

2a0b:f4c2:2::1
    """

    addresses = parser.parse(content)

    assert addresses == ["185.220.101.7", "199.249.230.81", "2a0b:f4c2:2::1"]


def test_exit_list_parser_skips_garbage_lines():
    """Banners and HTML from a misbehaving mirror are skipped."""
    parser = ExitListParser("tor_exit_list")

    content = "<html>\nUmm... You can only fetch the data every 30 minutes\n185.220.101.7\n"

    assert parser.parse(content) == ["185.220.101.7"]


def test_exit_list_parser_deduplicates_and_normalizes():
    parser = ExitListParser("tor_exit_list")

    content = "185.220.101.7\n::ffff:185.220.101.7\n 185.220.101.7 \n2A0B:F4C2:0002::0001\n"

    assert parser.parse(content) == ["185.220.101.7", "2a0b:f4c2:2::1"]


def test_exit_list_parser_empty_content():
    parser = ExitListParser("tor_exit_list")

    with pytest.raises(ParseError) as exc_info:
        parser.parse("   \n", {"source_url": "https://primary.example"})

    assert exc_info.value.context["source_url"] == "https://primary.example"


def test_exit_list_parser_reads_exit_address_dump():
    parser = ExitListParser("tor_exit_list")

    content = """ExitNode 0011BD2485AD45D984EC4159C88FC066E5E3300E
Published 2024-01-05 03:18:09
LastStatus 2024-01-05 04:00:00
ExitAddress 185.220.101.7 2024-01-05 04:02:38
ExitNode 00A1B2C3D4E5F60718293A4B5C6D7E8F90A1B2C3
Published 2024-01-05 02:11:40
LastStatus 2024-01-05 03:00:00
ExitAddress 199.249.230.81 2024-01-05 03:12:01
ExitAddress 185.220.101.7 2024-01-05 03:55:10
ExitAddress not-an-address 2024-01-05 03:55:10
"""

    assert parser.parse(content) == ["185.220.101.7", "199.249.230.81"]
