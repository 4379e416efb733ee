from fastapi import Request

from version_notifier.core.broadcaster import Broadcaster


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster
