import asyncio
import io
from contextlib import asynccontextmanager

import pytest

from elmtestfinder.discovery.parser import ElmParseError, ElmParser


@pytest.fixture(scope="module")
def parser():
    return ElmParser()


def test_expose_all_collects_top_level_values(parser):
    source_code = b"""module Tests exposing (..)

import Expect
import Test exposing (Test, describe, test)


suite : Test
suite =
    describe "math"
        [ test "adds" <| \\_ -> Expect.equal 2 (1 + 1) ]


helper : Int -> Int
helper x =
    x + 1


another =
    test "works" <| \\_ -> Expect.pass
"""
    assert parser.possibly_tests(source_code) == ["suite", "another"]


def test_explicit_exposing_lists_only_values(parser):
    source_code = b"""module Foo.Bar exposing (Model, suite, otherSuite)

type Model = Model

suite = Debug.todo "suite"

otherSuite = Debug.todo "other"

notExposed = Debug.todo "hidden"
"""
    assert parser.possibly_tests(source_code) == ["suite", "otherSuite"]


def test_missing_module_declaration_exposes_everything(parser):
    source_code = b"""
first = 1

second = 2
"""
    assert parser.possibly_tests(source_code) == ["first", "second"]


def test_empty_file(parser):
    assert parser.possibly_tests(b"") == []


def test_broken_module_declaration(parser):
    with pytest.raises(ElmParseError) as exc_info:
        parser.possibly_tests(b"module Tests exposing (\n", "tests/Tests.elm")

    assert exc_info.value.file_path == "tests/Tests.elm"
    assert exc_info.value.line == 1


def test_extract_reads_through_the_opener(parser):
    opened = []

    @asynccontextmanager
    async def open_file(file_path):
        opened.append(file_path)
        yield io.BytesIO(b"module Main exposing (suite)\n\nsuite = 1\n")

    names = asyncio.run(parser.extract("tests/Main.elm", open_file))

    assert names == ["suite"]
    assert opened == ["tests/Main.elm"]
