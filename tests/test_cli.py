"""Tests for the command-line interface."""

import io

import pytest
from rich.console import Console

from paperclassifier.cli import PaperClassifierCLI, create_parser
from paperclassifier.config import LLMSettings, Settings
from paperclassifier.console import ConsoleUI
from paperclassifier.services.spreadsheet_service import decode


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def cli_factory(settings, output):
    def _make(classifier=None):
        ui = ConsoleUI(Console(file=output, width=200))
        return PaperClassifierCLI(settings=settings, classifier=classifier, ui=ui)

    return _make


@pytest.fixture
def sheet(tmp_path):
    path = tmp_path / "papers.csv"
    path.write_text(
        "ID,Article Title,Abstract,Include-C\n"
        "P1,Choosing STEM,Survey of majors,\n"
        "P2,Already coded,Abstract,0\n",
        encoding="utf-8",
    )
    return path


def test_parser_defaults():
    args = create_parser().parse_args(["classify", "in.xlsx"])
    assert args.output.name == "paper-classification-results.xlsx"
    assert args.overwrite is False
    assert args.log_level == "WARNING"


def test_show(cli_factory, sheet, output):
    assert cli_factory().cmd_show(sheet) == 0
    text = output.getvalue()
    assert "Choosing STEM" in text
    assert "P2" in text


def test_show_reports_import_errors(cli_factory, tmp_path, output):
    path = tmp_path / "bad.csv"
    path.write_text("Article Title,Abstract\nNo abstract,\n", encoding="utf-8")

    assert cli_factory().cmd_show(path) == 1
    assert "Row 2: missing Abstract" in output.getvalue()


def test_classify_codes_only_uncoded_rows(cli_factory, make_classifier, sheet, tmp_path, settings):
    settings.update(llm=LLMSettings(model="gpt-4o-mini", api_key="sk-test"))
    classifier, client = make_classifier(reply={"include": 1, "design": 5})
    target = tmp_path / "out.xlsx"

    assert cli_factory(classifier).cmd_classify(sheet, target) == 0

    assert len(client.responses.calls) == 1
    rows = decode(target)
    assert rows[0].coding.design == 5
    assert rows[1].coding.include == 0


def test_classify_overwrite(cli_factory, make_classifier, sheet, tmp_path, settings):
    settings.update(llm=LLMSettings(model="gpt-4o-mini", api_key="sk-test"))
    classifier, client = make_classifier(reply={"include": 1})

    cli_factory(classifier).cmd_classify(sheet, tmp_path / "out.xlsx", overwrite=True)

    assert len(client.responses.calls) == 2


def test_classify_without_api_key(cli_factory, make_classifier, sheet, tmp_path, output):
    classifier, client = make_classifier(reply={"include": 1})

    assert cli_factory(classifier).cmd_classify(sheet, tmp_path / "out.xlsx") == 1
    assert client.responses.calls == []
    assert "No API key" in output.getvalue()


def test_config_saves_settings(cli_factory, tmp_path):
    cli_factory().cmd_config(model="o4-mini", api_key="sk-cli")

    reloaded = Settings.reload(tmp_path)
    assert reloaded.llm == LLMSettings(model="o4-mini", api_key="sk-cli")


def test_show_prints_bracketed_text_literally(cli_factory, tmp_path, output):
    path = tmp_path / "brackets.csv"
    path.write_text(
        "ID,Article Title,Abstract,Include-C,Discipline-C\n"
        "[b]1,[/bold] tricky [x],Abstract,1,[red]Math\n",
        encoding="utf-8",
    )

    assert cli_factory().cmd_show(path) == 0
    text = output.getvalue()
    assert "[/bold] tricky [x]" in text
    assert "[red]Math" in text
    assert "[b]1" in text
