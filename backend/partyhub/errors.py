"""Error taxonomy for lobby and round operations.

Every error here is raised before any state is mutated, so callers can turn
it straight into an ``{"error": ...}`` acknowledgement.
"""


class GameError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {'error': self.message}


class ValidationError(GameError):
    """Bad client input: display name, lobby code, unknown game id."""


class LobbyFull(ValidationError):
    def __init__(self, capacity: int = 8):
        super().__init__(f'Lobby is full (max {capacity} players)')


class RoundInProgress(ValidationError):
    def __init__(self):
        super().__init__('Cannot join while a round is in progress')


class PreconditionError(GameError):
    """Action not allowed in the caller's current situation."""


class InsufficientPlayers(PreconditionError):
    def __init__(self, minimum: int = 2):
        super().__init__(f'Need at least {minimum} players to start a round')


class PuzzleGenerationError(GameError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f'Failed to generate a valid Queens puzzle after {attempts} attempts')
