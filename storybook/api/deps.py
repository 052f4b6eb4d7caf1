"""Shared FastAPI dependencies for process-wide services."""

from __future__ import annotations

from fastapi import Request

from storybook.ai.router import ProviderRouter
from storybook.core.lifespan import ServiceContainer
from storybook.jobs.registry import JobRegistry
from storybook.jobs.worker import BackgroundExecutor
from storybook.services.story import StoryService


def get_services(request: Request) -> ServiceContainer:
  return request.app.state.services


def get_registry(request: Request) -> JobRegistry:
  return get_services(request).registry


def get_executor(request: Request) -> BackgroundExecutor:
  return get_services(request).executor


def get_router(request: Request) -> ProviderRouter:
  return get_services(request).router


def get_story_service(request: Request) -> StoryService:
  return get_services(request).story_service
