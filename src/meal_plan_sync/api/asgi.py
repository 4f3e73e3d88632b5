"""ASGI entrypoint for the meal plans API."""

from meal_plan_sync.api.app import create_app
from meal_plan_sync.containers import build_container

app = create_app(build_container())
