"""
@date: 2024-03-11
@desc: 访问日志输出到 logging
"""
import logging

from yzaccesslog.core.escape import to_bytes
from yzaccesslog.logger import ACCESS_LOGGER_NAME


class LoggerWriter(object):
    """
    ``write()`` sink that emits each access line as one INFO record.
    """

    def __init__(self, logger: logging.Logger, level: int = logging.INFO):
        self.logger = logger
        self.level = level

    def write(self, data) -> int:
        # 非 UTF-8 字节转成 \xHH，避免 handler 编码失败丢行
        data = to_bytes(data).decode('utf-8', 'backslashreplace')
        line = data[:-1] if data.endswith('\n') else data
        if line:
            self.logger.log(self.level, line)
        return len(data)

    def flush(self):
        pass


def get_access_writer(logger_name: str = ACCESS_LOGGER_NAME) -> LoggerWriter:
    return LoggerWriter(logging.getLogger(logger_name))
