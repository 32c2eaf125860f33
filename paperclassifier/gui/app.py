"""FastAPI application for the paper classifier."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from paperclassifier import __version__
from paperclassifier.config import Settings
from paperclassifier.gui.routers import actions, common, papers
from paperclassifier.gui.state import reset_state


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup."""
    reset_state(Settings.load())
    yield


app = FastAPI(title="Paper Classifier", version=__version__, lifespan=lifespan)
app.include_router(common.router)
app.include_router(papers.router)
app.include_router(actions.router)
