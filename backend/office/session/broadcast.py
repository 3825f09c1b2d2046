"""Fan a message out to every player in a room."""

import contextlib
from typing import Any


async def broadcast_to_players(
    players: dict[str, Any],
    message: dict[str, Any],
    exclude_connection_id: str | None = None,
) -> None:
    """Best-effort send to every player except the excluded connection.

    Iterates over a copy of the values: a leave can mutate the dict while
    a send is awaiting. A failed send to one player does not stop the rest.
    """
    for player in list(players.values()):
        if player.connection_id != exclude_connection_id:
            with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                await player.connection.send_message(message)
