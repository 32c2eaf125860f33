"""Paper Classifier - LLM-assisted screening of research papers.

A tool for coding paper titles and abstracts against a fixed coding
manual with an OpenAI model, and for round-tripping the results through
spreadsheets.
"""

__version__ = "1.0.0"

from paperclassifier.config import Settings
from paperclassifier.models.coding import Coding
from paperclassifier.models.paper import Paper

__all__ = ["Coding", "Paper", "Settings", "__version__"]
