class TarcryptError(Exception):
    """Base class for every failure reported as a single `tarcrypt: ...` line."""


class MissingArgument(TarcryptError):
    pass


class DestinationExists(TarcryptError):
    pass


class SourceNotFound(TarcryptError):
    pass


class ArchiverFailure(TarcryptError):
    """Packing or unpacking the tar stream failed."""


class CipherFailure(TarcryptError):
    """Encryption/decryption failed: wrong or missing passphrase, corrupt input, gpg error."""


class InvalidOption(TarcryptError):
    pass
