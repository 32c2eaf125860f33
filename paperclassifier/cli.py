"""Command-line interface handlers."""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from paperclassifier.config import LLMSettings, Settings, load_llm_models
from paperclassifier.console import ConsoleUI
from paperclassifier.errors import SpreadsheetImportError
from paperclassifier.services import spreadsheet_service
from paperclassifier.services.classification_service import (
    ClassificationFailure,
    PaperClassifier,
)
from paperclassifier.store import PaperStore

logger = logging.getLogger(__name__)


class PaperClassifierCLI:
    """CLI application for the paper classifier."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        classifier: Optional[PaperClassifier] = None,
        ui: Optional[ConsoleUI] = None,
    ):
        """Initialize CLI with settings.

        Args:
            settings: Application settings (loaded from .metadata if not provided)
            classifier: Classification client (built from settings if not provided)
            ui: Console output
        """
        self.settings = settings or Settings.load()
        self._classifier = classifier
        self.ui = ui or ConsoleUI()
        self.store = PaperStore()

    @property
    def classifier(self) -> PaperClassifier:
        if self._classifier is None:
            self._classifier = PaperClassifier.from_settings(self.settings)
        return self._classifier

    def _import(self, path: Path) -> bool:
        try:
            rows = spreadsheet_service.decode(path)
        except SpreadsheetImportError as e:
            self.ui.import_errors(e.message, e.errors)
            return False
        self.store.replace_all(rows)
        return True

    def cmd_show(self, path: Path) -> int:
        """Decode a spreadsheet and print its papers and codings."""
        if not self._import(path):
            return 1
        self.ui.display_papers(self.store.papers, title=path.name)
        return 0

    def cmd_classify(
        self,
        path: Path,
        output: Path,
        model: Optional[str] = None,
        overwrite: bool = False,
    ) -> int:
        """Classify the papers of a spreadsheet and write the results workbook.

        Args:
            path: Input spreadsheet (.xlsx or .csv)
            output: Target .xlsx path
            model: Model id overriding the configured one for this run
            overwrite: Re-classify papers that already carry a coding
        """
        llm = self.settings.classifier_settings()
        if model:
            llm = LLMSettings(model=model, api_key=llm.api_key)
        if not llm.is_configured:
            self.ui.error("No API key configured. Run `paperclassifier config --api-key ...`.")
            return 1
        if not self._import(path):
            return 1

        pending = [
            p.id for p in self.store.papers
            if p.can_classify and (overwrite or p.coding is None)
        ]
        failures = asyncio.run(self._classify_all(pending, llm))

        spreadsheet_service.write_workbook(self.store.papers, output)
        if failures:
            self.ui.warning(f"{failures} paper(s) could not be classified and were left uncoded")
        self.ui.exported(len(self.store.papers), output)
        return 0

    async def _classify_all(self, paper_ids: list[str], llm: LLMSettings) -> int:
        failures = 0
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            console=self.ui.console,
        ) as progress:
            task = progress.add_task("Classifying papers...", total=len(paper_ids))
            for done, paper_id in enumerate(paper_ids, start=1):
                paper = self.store.get(paper_id)
                if paper is None:
                    continue
                self.store.set_loading(paper_id, True)
                result = await self.classifier.classify(paper.title, paper.abstract, llm)
                if isinstance(result, ClassificationFailure):
                    failures += 1
                    self.store.set_loading(paper_id, False)
                    self.ui.warning(f"{paper.display_id}: {result.message}")
                else:
                    self.store.attach_coding(paper_id, result.coding)
                progress.update(
                    task,
                    advance=1,
                    description=f"Classified {done}/{len(paper_ids)} papers",
                )
        return failures

    def cmd_config(self, model: Optional[str] = None, api_key: Optional[str] = None) -> int:
        """Show model settings, or persist the given changes."""
        if model is not None or api_key is not None:
            llm = self.settings.llm
            self.settings.update(
                llm=LLMSettings(
                    model=model if model is not None else llm.model,
                    api_key=api_key if api_key is not None else llm.api_key,
                )
            )
            self.settings.save_llm()
            self.ui.success(f"Saved settings to {self.settings.llm_settings_path}")
        self.ui.display_settings(self.settings.llm, load_llm_models())
        return 0


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="paperclassifier",
        description="Title/abstract screening with an OpenAI model → Excel",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # show command
    show_parser = subparsers.add_parser("show", help="Print the papers of a spreadsheet")
    show_parser.add_argument("file", type=Path, help="Spreadsheet (.xlsx or .csv)")

    # classify command
    classify_parser = subparsers.add_parser("classify", help="Classify papers and write results")
    classify_parser.add_argument("file", type=Path, help="Spreadsheet (.xlsx or .csv)")
    classify_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path(spreadsheet_service.DEFAULT_EXPORT_FILENAME),
        help=f"Output workbook (default: {spreadsheet_service.DEFAULT_EXPORT_FILENAME})",
    )
    classify_parser.add_argument("--model", help="Model id for this run")
    classify_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Re-classify papers that already have a coding",
    )

    # config command
    config_parser = subparsers.add_parser("config", help="Show or change model settings")
    config_parser.add_argument("--model", help="Model id to save")
    config_parser.add_argument("--api-key", dest="api_key", help="OpenAI API key to save")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cli = PaperClassifierCLI()

    if args.command == "show":
        return cli.cmd_show(args.file)
    if args.command == "classify":
        return cli.cmd_classify(args.file, args.output, args.model, args.overwrite)
    if args.command == "config":
        return cli.cmd_config(args.model, args.api_key)
    return 2
