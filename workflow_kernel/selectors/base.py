"""
Module: workflow_kernel.selectors.base
Responsibility: Abstract base class for all read-only selectors.  Selectors
    form the "Q" side of the CQRS-lite pattern, providing structured read
    access to workflow data without mutation capability.
Architecture position: Kernel > Selectors.  May import from domain/ and
    logging_config.  MUST NOT import from services/.
    Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: selectors call only the RecordStore read methods
      (get, query, count, count_by) and subscribe.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      model instances.
"""

from abc import ABC

from workflow_kernel.domain.ports import RecordStore


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors receive the RecordStore from the caller and perform
        read-only queries against it.

    Non-goals:
        - BaseSelector does NOT define any query methods; subclasses
          implement domain-specific queries.
    """

    def __init__(self, store: RecordStore):
        self.store = store
