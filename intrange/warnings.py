import contextlib
import warnings
from typing import Optional

from intrange.exceptions import _BaseIntRangeException


class RangeWarning(_BaseIntRangeException, Warning):
    pass


# print a warning
def range_warn(warning: RangeWarning | str):
    if isinstance(warning, str):
        warning = RangeWarning(warning)
    warnings.warn(warning, stacklevel=2)


@contextlib.contextmanager
def warnings_filter(warnings_control: Optional[str]):
    # note: using warnings.catch_warnings() since it saves and restores
    # the warnings filter
    with warnings.catch_warnings():
        set_warnings_filter(warnings_control)
        yield


def set_warnings_filter(warnings_control: Optional[str]):
    if warnings_control == "error":
        warnings_filter = "error"
    elif warnings_control == "none":
        warnings_filter = "ignore"
    else:
        assert warnings_control is None  # sanity
        warnings_filter = "default"

    if warnings_control is not None:
        # warnings.simplefilter only adds to the warnings filters,
        # so we should clear warnings filter between calls to simplefilter()
        warnings.resetwarnings()

    warnings.simplefilter(warnings_filter, category=RangeWarning)  # type: ignore[arg-type]


class WidthMismatch(RangeWarning):
    """
    Two ranges of different bit widths were combined; the second one was
    zero-extended or truncated to the width of the first
    """

    pass
