from office.tests.mocks.connection import MockConnection
from office.tests.mocks.transport import RecordingTransport

__all__ = ["MockConnection", "RecordingTransport"]
