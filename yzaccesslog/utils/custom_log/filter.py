"""
@date: 2024-03-11
@desc: 把请求上下文写入应用日志
"""
import logging
from yzaccesslog.utils.fastapi_context.fastapi_context import context


class ContextFilter(logging.Filter):
    """
    Injects the current request's backend and error into every record, so
    application logs can use ``%(backend)s`` and ``%(error)s``.
    """

    def filter(self, record):
        data = context.data if context.exists() else {}
        record.backend = data.get('backend') or ''
        error = data.get('error')
        record.error = str(error) if error is not None else ''
        return True
