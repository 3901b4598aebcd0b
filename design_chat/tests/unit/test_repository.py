import pytest

from design_chat.database.repository import BeanieDesignStore, DesignStore


def test_design_store_is_abstract():
    with pytest.raises(TypeError):
        DesignStore()


def test_beanie_store_implements_every_operation():
    assert BeanieDesignStore.__abstractmethods__ == frozenset()
    assert isinstance(BeanieDesignStore(), DesignStore)
