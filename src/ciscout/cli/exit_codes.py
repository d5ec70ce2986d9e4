"""Exit codes for the ciscout CLI."""

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_NO_PLATFORM_DETECTED = EXIT_FAILURE
EXIT_UPLOAD_ERROR = 2
EXIT_INVALID_USAGE = 3
