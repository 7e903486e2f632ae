"""
Error taxonomy for the betting commands.

Every error carries a ``user_message``: the one line the chat user sees.
Internal detail goes to the log, never to the channel.
"""


class BettingError(Exception):
    """Base exception for anything that stops a command from running."""

    user_message = "Something went wrong."

    def __init__(self, detail: str | None = None, user_message: str | None = None):
        super().__init__(detail or user_message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class Unauthorized(BettingError):
    """Raised when the caller is not the administrator."""

    def __init__(self, admin_nick: str):
        super().__init__(user_message=f"Only {admin_nick} can use this command.")


class NoResult(BettingError):
    user_message = "There is no official result on file."


class AlreadyProcessed(BettingError):
    """Raised when settlement already ran for the current event."""

    def __init__(self, event: str):
        self.event = event
        super().__init__(user_message=f"{event} bets have already been processed in the past.")


class StoreUnavailable(BettingError):
    user_message = "Error accessing the bets database."


class MalformedRecord(BettingError):
    user_message = "The bets database contains a malformed record."


class AlreadyRegistered(BettingError):
    user_message = "You are already registered."


class NotRegistered(BettingError):
    def __init__(self, admin_nick: str):
        super().__init__(user_message=f"You're not a registered user. Ask {admin_nick} for a bot account.")


class InvalidInput(BettingError):
    """Raised when a name cannot be stored in a single field."""

    def __init__(self, values, delimiter: str):
        super().__init__(
            f"unstorable value(s) {values!r}",
            user_message=f"Names, events and driver codes may not contain {delimiter!r} or line breaks.",
        )


class InvalidBet(BettingError):
    user_message = "Invalid drivers."


class BetsClosed(BettingError):
    user_message = "Bets are closed."


class ResultPending(BettingError):
    """Raised when a new result would bury one that was never settled."""

    def __init__(self, event: str):
        self.event = event
        super().__init__(user_message=f"{event} bets have not been processed yet.")
