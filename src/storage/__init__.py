"""Storage helpers shared by the skill library and the task recorder IO.

This package provides:
- Conversion of live objects into plain messages
- Deterministic file naming and directory helpers
- Atomic writes
- Container file IO (single records and time-stamped record lists)
"""

from storage.message_codec import to_message, messages_equal
from storage.paths import (
    normalize_topic_name,
    get_data_file_name,
    get_clmc_file_name,
    get_counter_file_name,
    get_name_from_filename,
    check_and_create_directories,
    check_for_directory,
    get_directory_list,
    atomic_output,
    atomic_write_text,
)
from storage.serializer import (
    write_to_file,
    read_from_file,
    write_to_file_with_time_stamps,
    read_from_file_with_time_stamps,
)

__all__ = [
    # Messages
    "to_message",
    "messages_equal",
    # Paths
    "normalize_topic_name",
    "get_data_file_name",
    "get_clmc_file_name",
    "get_counter_file_name",
    "get_name_from_filename",
    "check_and_create_directories",
    "check_for_directory",
    "get_directory_list",
    "atomic_output",
    "atomic_write_text",
    # Container IO
    "write_to_file",
    "read_from_file",
    "write_to_file_with_time_stamps",
    "read_from_file_with_time_stamps",
]
