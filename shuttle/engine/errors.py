"""Engine error types. Each carries the HTTP status the API answers with."""


class EngineError(Exception):
    status_code = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'error': self.message}
        payload.update(self.details)
        return payload


class InsufficientPlayersError(EngineError):
    status_code = 400


class InvalidEntryError(EngineError):
    status_code = 400


class NotFoundError(EngineError):
    status_code = 404


class SlotNotFoundError(NotFoundError):
    pass


class PlayerBusyError(EngineError):
    status_code = 409


class CourtBusyError(EngineError):
    status_code = 409


class ResolutionImpossibleError(EngineError):
    status_code = 409


class StaleResolutionError(EngineError):
    status_code = 409


class ExternalStrategyUnavailable(EngineError):
    status_code = 502
