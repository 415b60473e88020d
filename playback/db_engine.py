"""
Database handle for the playback system.
"""

from playback.constants import DB_NAME
from util.db_engine import DatabaseHandle

_handle = DatabaseHandle(DB_NAME)

get_engine = _handle.get_engine
set_engine = _handle.set_engine
reset_engine = _handle.reset_engine
get_session = _handle.get_session
