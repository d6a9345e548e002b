class _BaseIntRangeException(Exception):
    """
    Base exception class.

    This exception is not raised directly. Other exceptions inherit it in
    order to share message and hint formatting.
    """

    def __init__(self, message="Error Message not found.", *items, hint=None):
        """
        Exception initializer.

        Arguments
        ---------
        message : str
            Error message to display with the exception.
        *items : tuple[int, int], optional
            (lineno, col_offset) of the offending source text, if known.
        """
        self._message = message
        self._hint = hint

        self.lineno = None
        self.col_offset = None

        if len(items) == 1 and isinstance(items[0], tuple) and isinstance(items[0][0], int):
            self.lineno, self.col_offset = items[0][:2]

    @property
    def hint(self):
        # some hints are expensive to compute, so we wait until the last
        # minute when the formatted message is actually requested to compute
        # them.
        if callable(self._hint):
            return self._hint()
        return self._hint

    @property
    def message(self):
        msg = self._message
        if self.hint:
            msg += f"\n\n  (hint: {self.hint})"
        return msg

    def __str__(self):
        if self.lineno is not None and self.col_offset is not None:
            return f"line {self.lineno}:{self.col_offset} {self.message}"
        return self.message


class IntRangeException(_BaseIntRangeException):
    pass


class IRParseError(IntRangeException):
    """Invalid IR source text."""


class UnknownSymbol(IRParseError):
    """Reference to a struct type, global or function that is never declared."""


class AnalysisInternalException(_BaseIntRangeException):
    """
    Base internal exception class.

    This exception is not raised directly, it is subclassed by other internal
    exceptions.

    Internal exceptions are raised as a means of telling the user that the
    analysis has panicked, and that filing a bug report would be appropriate.
    """

    def __str__(self):
        return (
            f"{self.message}\n\nThis is an unhandled internal analysis error. "
            "Please create an issue on Github to notify the developers!\n"
        )


class AnalysisPanic(AnalysisInternalException):
    """General unexpected error during analysis."""


class UnmodeledInstruction(AnalysisPanic):
    """An instruction has no range transfer rule; no sound result is possible."""
