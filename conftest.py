import pytest


@pytest.fixture(autouse=True)
def fresh_container():
    """Give every test its own mock e-mail outbox, provider and event log."""
    from infrastructure.container import container
    from infrastructure.events import get_event_bus

    container.reset()
    bus = get_event_bus()
    if hasattr(bus, "clear_published"):
        bus.clear_published()
    yield
    container.reset()
