"""FastAPI Dependencies — hand app-scoped providers to route handlers.

Invariants:
    - Providers are built once in the lifespan and stored on app.state
    - Routes never construct clients or stores themselves
    - Tests swap any provider through app.dependency_overrides

Design Decisions:
    - Request-scoped lookups over module singletons: the store backend is a
      deployment setting resolved at startup
"""

from fastapi import Request

from brain_dump.core.repository_protocols import (
    Narrator, ReflectionAssistant, ReflectionStore, Transcriber,
)
from brain_dump.services.narration import NarrationDispatcher


def get_store(request: Request) -> ReflectionStore:
    return request.app.state.store


def get_assistant(request: Request) -> ReflectionAssistant:
    return request.app.state.assistant


def get_narrator(request: Request) -> Narrator:
    return request.app.state.narrator


def get_transcriber(request: Request) -> Transcriber:
    return request.app.state.transcriber


def get_narration(request: Request) -> NarrationDispatcher:
    return request.app.state.narration

