"""
Analytics error taxonomy.

``PromptNotFoundError`` and ``AlgorithmExecutionError`` let the REST layer tell
"not found" apart from "computation failed".
"""


class AnalyticsError(Exception):
    """Base class for graph analytics errors."""


class PromptNotFoundError(AnalyticsError):
    """Raised when a referenced prompt id does not resolve."""

    def __init__(self, prompt_id: str):
        super().__init__(f"Prompt not found: {prompt_id}")
        self.prompt_id = prompt_id


class ProjectionExistsError(AnalyticsError):
    """Raised when creating a projection whose name is still live."""

    def __init__(self, name: str):
        super().__init__(f"Graph projection already exists: {name}")
        self.name = name


class AlgorithmExecutionError(AnalyticsError):
    """Raised when a projection or algorithm run fails inside the graph store."""

    def __init__(self, algorithm: str, message: str):
        super().__init__(f"{algorithm} failed: {message}")
        self.algorithm = algorithm


class AlgorithmTimeoutError(AlgorithmExecutionError):
    """Raised when an algorithm run exceeds the configured timeout."""

    def __init__(self, algorithm: str, timeout: float):
        super().__init__(algorithm, f"timed out after {timeout}s")
        self.timeout = timeout
