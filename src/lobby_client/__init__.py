"""
OCGP Lobby Client.

Client-side synchronization core for the online chess lobby: keeps a local
view of one room consistent with the server across push and polling
transports, and drives turn countdowns and one-shot notifications.
"""

from lobby_client.lifecycle import LobbyController, View

__all__ = ["LobbyController", "View"]
