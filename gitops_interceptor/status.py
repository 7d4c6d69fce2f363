class ExitCodes:
    SUCCESS = 0
    ERROR = 1
    OUT_OF_SCOPE = 2
    PUSH_FAILED = 3
