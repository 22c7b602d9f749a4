class LobbyError(ValueError):
    """A request the game refused. Reported to clients as ``lobby_error``."""

    # whether the error goes to the whole session instead of the requester
    broadcast = False


class SessionNotFound(LobbyError):
    def __init__(self, code: str):
        super().__init__(f"Lobby code {code} is invalid or has expired.")
        self.code = code


class SessionFull(LobbyError):
    def __init__(self, max_players: int):
        super().__init__(f"Session is full ({max_players} players max)")


class GameInProgress(LobbyError):
    def __init__(self):
        super().__init__("The game has already started.")


class NotHost(LobbyError):
    def __init__(self):
        super().__init__("Only the host can start the game.")


class NotEnoughReadyPlayers(LobbyError):
    broadcast = True

    def __init__(self, required: int):
        super().__init__(f"Need at least {required} ready players to start.")


class IllegalTransition(RuntimeError):
    pass
