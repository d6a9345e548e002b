import hypothesis
import pytest

from intrange import analyze_source
from intrange.settings import RangeSettings

############
# PATCHING #
############


# disable hypothesis deadline globally
hypothesis.settings.register_profile("ci", deadline=None)
hypothesis.settings.load_profile("ci")


@pytest.fixture
def analyze():
    """
    Parse, check and analyze IR source text; keyword arguments are
    passed to RangeSettings.
    """

    def fn(source: str, **kwargs):
        return analyze_source(source, RangeSettings(**kwargs))

    return fn


@pytest.fixture
def make_file(tmp_path):
    def fn(name, contents):
        path = tmp_path / name
        with path.open("w") as f:
            f.write(contents)
        return path

    return fn
