"""
Custom logging formats that carry controller specific fields
"""

# First Party
from alog import AlogJsonFormatter


class TopoJsonFormatter(AlogJsonFormatter):
    """Custom Log Format that extends AlogJsonFormatter with the identifiers of
    the resource being reconciled, the work item key and thread information
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "process",
        "thread",
        "threadName",
        "kind",
        "apiVersion",
        "resourceVersion",
        "resourceName",
        "resourceNamespace",
        "workItemKey",
    ]

    def format(self, record):
        if resource := getattr(record, "resource", None):
            record.kind = resource.get("kind")
            record.apiVersion = resource.get("apiVersion")

            metadata = resource.get("metadata") or {}
            record.resourceVersion = metadata.get("resourceVersion")
            record.resourceName = metadata.get("name")
            record.resourceNamespace = metadata.get("namespace")

        if key := getattr(record, "key", None):
            record.workItemKey = key

        return super().format(record)
