"""launch_engine.integrations — External service gateway modules.

All outbound HTTP calls go through a gateway in this package, never via bare
`requests` calls in services or blueprints.

Current gateways:
  task_gateway.TaskServiceGateway — external task tracker used for surfacing

The active TaskCreator lives in ``app.extensions["task_creator"]`` so tests
can swap in a fake without patching module globals.
"""

from flask import current_app

from launch_engine.integrations.task_gateway import (
    NullTaskCreator,
    TaskCreator,
    TaskServiceGateway,
)

EXTENSION_KEY = "task_creator"


def build_task_creator(config) -> TaskCreator:
    """Build the TaskCreator described by an app config mapping."""
    url = config.get("TASK_SERVICE_URL")
    if not url:
        return NullTaskCreator()
    return TaskServiceGateway(
        base_url=url,
        token=config.get("TASK_SERVICE_TOKEN"),
        timeout=config.get("TASK_SERVICE_TIMEOUT", 10),
    )


def get_task_creator() -> TaskCreator:
    """Return the TaskCreator registered on the current app."""
    creator = current_app.extensions.get(EXTENSION_KEY)
    if creator is None:
        creator = build_task_creator(current_app.config)
        current_app.extensions[EXTENSION_KEY] = creator
    return creator
