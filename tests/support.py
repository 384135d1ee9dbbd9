"""Shared test doubles"""
from concurrent.futures import Future

from log_sink import LogSink


class RecordingSink(LogSink):
    """LogSink that keeps messages in memory"""

    def __init__(self):
        super().__init__()
        self.records = []

    def log(self, level, message):
        self.records.append((level, message))

    def messages(self):
        return [message for _, message in self.records]


class ImmediateExecutor:
    """Runs submitted work inline so analytics writes can be asserted"""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        future.set_result(fn(*args, **kwargs))
        return future

    def shutdown(self, wait=True):
        pass
