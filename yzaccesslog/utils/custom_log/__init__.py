from .filter import ContextFilter
from .logger import LoggerWriter, get_access_writer
