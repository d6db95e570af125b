"""Workflow engine exceptions."""


class WorkflowError(Exception):
    """Base class for every failure that ends a workflow run."""


class WorkflowValidationError(WorkflowError):
    """The workflow definition or a node configuration is invalid."""


class MissingConfigError(WorkflowValidationError):
    """A node is missing a required configuration field."""

    def __init__(self, field: str, node_id: str | None = None):
        self.field = field
        self.node_id = node_id
        super().__init__(f"{field} is required")


class MissingContextError(WorkflowValidationError):
    """A node ran before the node that produces its input."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)


class MissingOutputError(WorkflowError):
    """A node finished without writing a context key it declares."""

    def __init__(self, node_id: str, keys: list[str]):
        self.node_id = node_id
        self.keys = keys
        super().__init__(f"Node {node_id} produced no value for: {', '.join(keys)}")


class UnknownNodeTypeError(WorkflowValidationError):
    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type}")


class CyclicWorkflowError(WorkflowValidationError):
    """The edge set contains at least one cycle."""

    def __init__(self, node_ids: list[str]):
        self.node_ids = node_ids
        super().__init__(f"Cyclic workflow: nodes {', '.join(node_ids)} form a cycle")


class CollaboratorError(WorkflowError):
    """An external collaborator (data source, language model, action sink) failed."""

    def __init__(self, collaborator: str, message: str, node_id: str | None = None):
        self.collaborator = collaborator
        self.node_id = node_id
        super().__init__(message)


class DataSourceError(Exception):
    """Raised by data source clients."""


class LanguageModelError(Exception):
    """Raised by language model clients."""


class ActionSinkError(Exception):
    """Raised by action sinks."""


class InvalidStatusTransition(WorkflowError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move execution from {current} to {target}")
