import getpass

from abc import ABC, abstractmethod

from tarcrypt.utils.errors import CipherFailure

DEFAULT_CONFIRM = "Are you sure? [y/n]: "


class PromptProvider(ABC):
    """Source of passphrases and yes/no answers."""

    @abstractmethod
    def secret(self, message: str) -> str:
        ...

    @abstractmethod
    def confirm(self, message: str = DEFAULT_CONFIRM) -> bool:
        ...


class TerminalPrompt(PromptProvider):
    def __init__(self, assume_yes: bool = False, assume_no: bool = False):
        self.assume_yes = assume_yes
        self.assume_no = assume_no

    def secret(self, message: str) -> str:
        try:
            return getpass.getpass(message)
        except EOFError:
            return ""

    def confirm(self, message: str = DEFAULT_CONFIRM) -> bool:
        if self.assume_yes:
            return True
        if self.assume_no:
            return False
        try:
            reply = input(message)
        except EOFError:
            return False
        return reply.strip().lower() in ("y", "yes")


class StaticPrompt(PromptProvider):
    """Non-interactive answers: a fixed passphrase and a fixed confirmation."""

    def __init__(self, passphrase: str | None = None, answer: bool = True):
        self.passphrase = passphrase
        self.answer = answer

    def secret(self, message: str) -> str:
        if self.passphrase is None:
            raise CipherFailure("no passphrase available (non-interactive)")
        return self.passphrase

    def confirm(self, message: str = DEFAULT_CONFIRM) -> bool:
        return self.answer
