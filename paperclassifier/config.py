"""Configuration management.

``Settings`` is a **metaclass-based singleton**: the first call to
``Settings.load()`` creates the instance; every later call returns
the same object.  Use ``update()`` to change fields at runtime, or
``reload()`` to re-read everything from disk.

User-editable configuration lives under ``.metadata/``:

* ``llm_settings.yaml``  – selected model and OpenAI API key

On first run, missing files are copied from ``.metadata.example/``.

Application data ships with the package under ``paperclassifier/data/``:

* ``llm_models.yaml``         – model registry for the settings dropdown
* ``coding_manual.md``        – instruction prompt (the coding manual)
* ``few_shot_examples.yaml``  – worked examples sent with every request
"""

import logging
import os
import shutil
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from paperclassifier.models.coding import Coding, validate_coding

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_MANUAL_PATH = DATA_DIR / "coding_manual.md"
DEFAULT_EXAMPLES_PATH = DATA_DIR / "few_shot_examples.yaml"

# Top-level key of llm_settings.yaml
SETTINGS_NAMESPACE = "paper-classifier-model-settings"
DEFAULT_MODEL = "gpt-4o-mini"
API_KEY_ENV = "OPENAI_API_KEY"


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMModel:
    """A single model entry from the built-in registry."""

    id: str
    name: str
    provider_id: str
    provider_name: str
    description: str = ""


@dataclass
class LLMSettings:
    """Selected model and access credential for classification calls."""

    model: str = DEFAULT_MODEL
    api_key: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.model.strip() and self.api_key.strip())


@dataclass(frozen=True)
class FewShotExample:
    """A worked (paper, coding) pair sent ahead of every request."""

    title: str
    abstract: str
    coding: Coding


# ---------------------------------------------------------------------------
# Singleton metaclass
# ---------------------------------------------------------------------------

class _SettingsMeta(type):
    """Metaclass that enforces a process-wide singleton for *Settings*.

    * First ``Settings(...)`` creates and caches the instance.
    * Later ``Settings(...)`` calls return the cached instance (args ignored).
    """

    _instances: dict[type, Any] = {}

    def __call__(cls, *args: Any, **kwargs: Any) -> Any:
        if cls not in cls._instances:
            cls._instances[cls] = super().__call__(*args, **kwargs)
        return cls._instances[cls]


# ---------------------------------------------------------------------------
# Settings dataclass (singleton)
# ---------------------------------------------------------------------------

@dataclass
class Settings(metaclass=_SettingsMeta):
    """Application settings: a singleton with runtime-mutable fields.

    Usage::

        settings = Settings.load()              # first call → create
        settings = Settings.load()              # later → same object
        settings.update(llm=LLMSettings(...))   # runtime change
        settings = Settings.reload()            # re-read from disk
    """

    metadata_dir: Path = Path(".metadata")

    llm: LLMSettings = field(default_factory=LLMSettings)

    # Operator-supplied prompt material (packaged defaults when None)
    manual_path: Optional[Path] = None
    examples_path: Optional[Path] = None

    # ── Computed properties ────────────────────────────────────────────

    @property
    def llm_settings_path(self) -> Path:
        return self.metadata_dir / "llm_settings.yaml"

    def classifier_settings(self) -> LLMSettings:
        """Model settings for a call, with the API key env var as fallback."""
        api_key = self.llm.api_key or os.getenv(API_KEY_ENV, "")
        return replace(self.llm, api_key=api_key)

    # ── Runtime helpers ───────────────────────────────────────────────

    def update(self, **kwargs: Any) -> None:
        """Mutate settings fields at runtime.

        >>> Settings.load().update(manual_path=Path("manual.md"))
        """
        for key, value in kwargs.items():
            if not hasattr(self, key):
                raise AttributeError(f"Settings has no field '{key}'")
            setattr(self, key, value)

    def save_llm(self) -> None:
        """Persist the current model settings to ``llm_settings.yaml``."""
        save_llm_settings(self.llm_settings_path, self.llm)

    # ── Factory / lifecycle ───────────────────────────────────────────

    @classmethod
    def load(cls, base_dir: Optional[Path] = None) -> "Settings":
        """Load or return the singleton Settings instance.

        On first call the singleton is created; subsequent calls return
        the cached instance.  Pass *base_dir* to override the project
        root (defaults to the repository root one level above the package).
        """
        if cls in _SettingsMeta._instances:
            return _SettingsMeta._instances[cls]  # type: ignore[return-value]

        if base_dir is None:
            base_dir = Path(__file__).resolve().parent.parent

        metadata_dir = base_dir / ".metadata"
        cls._ensure_default_files(base_dir, metadata_dir)

        return cls(
            metadata_dir=metadata_dir,
            llm=_load_llm_settings(metadata_dir / "llm_settings.yaml"),
        )

    @classmethod
    def reload(cls, base_dir: Optional[Path] = None) -> "Settings":
        """Discard the current singleton and re-load from disk."""
        cls.reset()
        return cls.load(base_dir)

    @classmethod
    def reset(cls) -> None:
        """Discard the singleton so the next ``load()`` re-creates it."""
        _SettingsMeta._instances.pop(cls, None)

    # ── Private ───────────────────────────────────────────────────────

    @staticmethod
    def _ensure_default_files(base_dir: Path, metadata_dir: Path) -> None:
        """Copy ``.metadata.example/`` templates when real files are missing."""
        metadata_dir.mkdir(parents=True, exist_ok=True)

        example_dir = base_dir / ".metadata.example"
        if not example_dir.exists():
            return

        for example_file in example_dir.iterdir():
            if example_file.is_file():
                target = metadata_dir / example_file.name
                if not target.exists():
                    shutil.copy2(example_file, target)
                    logger.info("Created .metadata/%s from template", example_file.name)


# ---------------------------------------------------------------------------
# YAML loaders
# ---------------------------------------------------------------------------

def _load_llm_settings(path: Path) -> LLMSettings:
    """Load model settings from ``llm_settings.yaml``.

    Missing or malformed files yield the defaults (no key, default model).
    """
    if not path.exists():
        return LLMSettings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return LLMSettings()

    if not isinstance(data, dict):
        return LLMSettings()
    section = data.get(SETTINGS_NAMESPACE)
    if not isinstance(section, dict):
        return LLMSettings()

    return LLMSettings(
        model=str(section.get("model") or DEFAULT_MODEL),
        api_key=str(section.get("api_key") or ""),
    )


def save_llm_settings(path: Path, llm: LLMSettings) -> None:
    """Persist model settings to ``llm_settings.yaml``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {SETTINGS_NAMESPACE: {"model": llm.model, "api_key": llm.api_key}}
    with open(path, "w", encoding="utf-8") as f:
        f.write("# Paper classifier model settings\n")
        f.write("# model: OpenAI model id (see paperclassifier/data/llm_models.yaml)\n")
        f.write("# api_key: OpenAI API key (empty → OPENAI_API_KEY environment variable)\n\n")
        yaml.dump(
            data,
            f,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )


def load_llm_models() -> list[LLMModel]:
    """Load the built-in model registry from ``paperclassifier/data/llm_models.yaml``.

    This is **application data** (ships with the package), not user config.
    """
    registry_path = DATA_DIR / "llm_models.yaml"
    if not registry_path.exists():
        return []
    with open(registry_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        return []

    models: list[LLMModel] = []
    for provider in data.get("providers") or []:
        pid = provider.get("id", "")
        pname = provider.get("name", "")
        for m in provider.get("models") or []:
            models.append(
                LLMModel(
                    id=str(m["id"]),
                    name=str(m.get("name", m["id"])),
                    provider_id=pid,
                    provider_name=pname,
                    description=str(m.get("description", "")),
                )
            )
    return models


def load_coding_manual(path: Optional[Path] = None) -> str:
    """Return the instruction prompt text (the coding manual)."""
    manual_path = path or DEFAULT_MANUAL_PATH
    return manual_path.read_text(encoding="utf-8").strip()


def load_few_shot_examples(path: Optional[Path] = None) -> list[FewShotExample]:
    """Load the ordered few-shot example set.

    Raises:
        ValueError: If the file is not a mapping with an ``examples`` list.
        CodingValidationError: If an example coding violates the schema.
    """
    examples_path = path or DEFAULT_EXAMPLES_PATH
    with open(examples_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict) or not isinstance(data.get("examples"), list):
        raise ValueError(f"{examples_path} must contain an 'examples' list")

    return [
        FewShotExample(
            title=str(entry["title"]),
            abstract=str(entry["abstract"]),
            coding=validate_coding(entry["coding"]),
        )
        for entry in data["examples"]
    ]
