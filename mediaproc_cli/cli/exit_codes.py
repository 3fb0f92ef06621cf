"""Standard exit codes for mediaproc.

This module defines the exit codes used across the mediaproc CLI
for consistent error reporting and scripting support.
"""


class ExitCode:
    """Standard exit codes for mediaproc.

    Codes are grouped by error category so scripts can tell a typo
    in a capability name apart from a failed package install:
    - 0: Success
    - 1: Invalid user input (flags, arguments, capability names)
    - 2: File system error (missing input, output already exists)
    - 3: External tool error (package manager or plugin command failed)
    - 4: Unsupported operation or format
    - 5: Plugin load failure
    - 6: Internal error
    - 130: Cancelled by Ctrl+C (SIGINT)
    """

    SUCCESS = 0

    USER_INPUT = 1
    FS_ERROR = 2
    TOOL_ERROR = 3
    UNSUPPORTED = 4
    PLUGIN_ERROR = 5
    INTERNAL = 6

    # 128 + SIGINT
    CANCELLED = 130

    @classmethod
    def get_name(cls, code: int) -> str:
        """Get the name of an exit code.

        Args:
            code: The exit code value

        Returns:
            Human-readable name for the exit code
        """
        names = {
            cls.SUCCESS: "SUCCESS",
            cls.USER_INPUT: "USER_INPUT",
            cls.FS_ERROR: "FS_ERROR",
            cls.TOOL_ERROR: "TOOL_ERROR",
            cls.UNSUPPORTED: "UNSUPPORTED",
            cls.PLUGIN_ERROR: "PLUGIN_ERROR",
            cls.INTERNAL: "INTERNAL",
            cls.CANCELLED: "CANCELLED",
        }
        return names.get(code, f"UNKNOWN({code})")

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get the description of an exit code.

        Args:
            code: The exit code value

        Returns:
            Human-readable description for the exit code
        """
        descriptions = {
            cls.SUCCESS: "Operation completed successfully",
            cls.USER_INPUT: "Invalid user input (flags, arguments, names)",
            cls.FS_ERROR: "File system error (missing file, file exists)",
            cls.TOOL_ERROR: "External tool failed (package manager, plugin command)",
            cls.UNSUPPORTED: "Unsupported operation or file format",
            cls.PLUGIN_ERROR: "Plugin not found or failed to load",
            cls.INTERNAL: "Internal mediaproc error",
            cls.CANCELLED: "Operation cancelled by user",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")
