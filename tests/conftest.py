import pytest

from mapforge.persistence import MemoryStorage
from mapforge.project import make_empty_project
from mapforge.reconcile import RUBRICS


@pytest.fixture
def storage():
    """Return an empty in-memory storage slot."""
    return MemoryStorage()


@pytest.fixture
def inbound_project():
    """Return an empty inbound project with one round R01."""
    return make_empty_project("translogica", "inbound", "DESADV")


@pytest.fixture
def outbound_project():
    return make_empty_project("translogica", "outbound", "IFTSTA")


@pytest.fixture
def cz_candidates():
    """Every destination the CZ rubric knows about, qualifier included."""
    rubric = RUBRICS["CZ"]
    return [rubric.qualifier, *rubric.default_destinations]
