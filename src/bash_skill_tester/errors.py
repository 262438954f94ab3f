"""Exception hierarchy shared by the bank, storage and session layers."""


class BashSkillTesterError(Exception):
    """Base class for all application errors."""


class MalformedBankError(BashSkillTesterError):
    """The question bank could not be loaded. Fatal at startup."""


class CorruptProfileError(BashSkillTesterError):
    """A stored profile exists but cannot be decoded or validated.

    The file is left in place; the user decides whether to reset it.
    """

    def __init__(self, user_id: str, path, reason: str):
        self.user_id = user_id
        self.path = path
        self.reason = reason
        super().__init__(
            f"Profile for '{user_id}' at {path} is unreadable ({reason}). "
            f"Move or delete the file to start a fresh profile."
        )


class StorageIOError(BashSkillTesterError):
    """Reading or writing persisted state failed. The prior on-disk state is untouched."""


class HistoryOrderError(StorageIOError):
    """An assessment result is not newer than the latest committed one."""


class InvalidArgumentError(BashSkillTesterError):
    """Unknown topic, module or malformed user input."""
