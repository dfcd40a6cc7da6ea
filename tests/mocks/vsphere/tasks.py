"""
Mock task classes
"""
import time
from typing import Any
from pyVmomi import vim
from .base import MockVSphereObject


class MockTask(MockVSphereObject):
    """Mock Task object for async operations"""

    _vim_type = vim.Task

    def __init__(self, operation: str = "GenericTask", result: Any = None,
                 pending_polls: int = 0):
        super().__init__()
        self._properties.update({
            'info': MockTaskInfo(operation, result, pending_polls),
            'key': f'task-{id(self)}'
        })

    def complete_successfully(self, result: Any = None):
        """Complete the task successfully"""
        self.info.state = 'success'
        if result is not None:
            self.info.result = result
        return self

    def fail_with_error(self, error: str):
        """Fail the task with an error"""
        self.info.state = 'error'
        self.info.error = MockTaskError(error)
        return self


class MockTaskInfo(MockVSphereObject):
    """Mock TaskInfo object; reports 'running' for the first pending_polls reads"""

    def __init__(self, operation: str, result: Any = None, pending_polls: int = 0):
        super().__init__()
        self._pending = pending_polls
        self._properties.update({
            'key': f'task-{id(self)}',
            'name': f'vim.vm.{operation}',
            'descriptionId': operation,
            'state': 'running',
            'error': None,
            'result': result,
            'startTime': time.time(),
        })

    @property
    def state(self):
        if self._pending > 0:
            self._pending -= 1
            return 'running'
        return self._properties['state']


class MockTaskError(MockVSphereObject):
    """Mock task fault"""

    def __init__(self, message: str):
        super().__init__()
        self._properties.update({
            'msg': message,
            'localizedMessage': message
        })
