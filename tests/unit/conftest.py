import pytest


@pytest.fixture(autouse=True)
def patch_datastore():
    # Unit tests exercise the real datastore_pg against fake psycopg2 objects
    yield
