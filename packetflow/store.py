"""Storage interfaces the engine talks to, with in-memory implementations.

The engine owns no persistence. It reads and writes form data through a
DocumentStore, workflows through a WorkflowRepository and personal data
through a VaultProvider. The in-memory classes below satisfy the protocols and
are suitable for tests and single-process use.
"""

import copy
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable
import uuid

from packetflow.catalog import FormData, coerce_form_type
from packetflow.errors import StoreError
from packetflow.mapping import VaultRecord
from packetflow.types import FormType, WorkflowErrorCode
from packetflow.workflow import TROWorkflow


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for form data documents."""

    def get_form_data(self, doc_id: str) -> Optional[FormData]: ...

    def save_form_data(self, doc_id: str, form_type: FormType, data: Mapping[str, Any]) -> None: ...

    def create_document(self, workflow_id: str, form_type: FormType, data: Mapping[str, Any]) -> str: ...


@runtime_checkable
class WorkflowRepository(Protocol):
    """Protocol for workflow persistence."""

    def save_workflow(self, workflow: TROWorkflow) -> None: ...

    def get_workflow(self, workflow_id: str) -> Optional[TROWorkflow]: ...


@runtime_checkable
class VaultProvider(Protocol):
    """Protocol for the personal data vault."""

    def get_vault(self, user_id: str) -> Optional[VaultRecord]: ...


class InMemoryDocumentStore:
    """Dict-backed document store.

    Data is copied on the way in and out so callers never share state with
    the store.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}

    def create_document(self, workflow_id: str, form_type: FormType, data: Mapping[str, Any]) -> str:
        doc_id = f"doc_{uuid.uuid4().hex[:16]}"
        self._documents[doc_id] = {
            "workflowId": workflow_id,
            "formType": coerce_form_type(form_type),
            "data": copy.deepcopy(dict(data)),
        }
        return doc_id

    def get_form_data(self, doc_id: str) -> Optional[FormData]:
        document = self._documents.get(doc_id)
        if document is None:
            return None
        return copy.deepcopy(document["data"])

    def save_form_data(self, doc_id: str, form_type: FormType, data: Mapping[str, Any]) -> None:
        document = self._documents.get(doc_id)
        if document is None:
            raise StoreError(
                f"Document not found: {doc_id}",
                code=WorkflowErrorCode.SAVE_FAILED,
                metadata={"docId": doc_id},
            )
        if document["formType"] != coerce_form_type(form_type):
            raise StoreError(
                f"Document {doc_id} holds {document['formType'].value}, not {coerce_form_type(form_type).value}",
                code=WorkflowErrorCode.SAVE_FAILED,
                metadata={"docId": doc_id},
            )
        document["data"] = copy.deepcopy(dict(data))

    def list_documents(self, workflow_id: str) -> List[str]:
        return [
            doc_id for doc_id, document in self._documents.items()
            if document["workflowId"] == workflow_id
        ]

    @property
    def document_count(self) -> int:
        return len(self._documents)


class InMemoryWorkflowRepository:
    """Dict-backed workflow repository.

    Workflows are stored as their serialized dicts, so a loaded workflow is
    always a fresh object.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, Dict[str, Any]] = {}

    def save_workflow(self, workflow: TROWorkflow) -> None:
        self._workflows[workflow.id] = workflow.to_dict()

    def get_workflow(self, workflow_id: str) -> Optional[TROWorkflow]:
        data = self._workflows.get(workflow_id)
        if data is None:
            return None
        return TROWorkflow.from_dict(data)

    def list_workflows(self, user_id: str) -> List[TROWorkflow]:
        return [
            TROWorkflow.from_dict(data) for data in self._workflows.values()
            if data["userId"] == user_id
        ]


class InMemoryVaultProvider:
    """Vault records keyed by user id."""

    def __init__(self, records: Optional[Mapping[str, VaultRecord]] = None) -> None:
        self._records: Dict[str, VaultRecord] = dict(records or {})

    def put_vault(self, user_id: str, record: VaultRecord) -> None:
        self._records[user_id] = record

    def get_vault(self, user_id: str) -> Optional[VaultRecord]:
        record = self._records.get(user_id)
        return dict(record) if record is not None else None  # type: ignore[return-value]


__all__ = [
    "DocumentStore",
    "WorkflowRepository",
    "VaultProvider",
    "InMemoryDocumentStore",
    "InMemoryWorkflowRepository",
    "InMemoryVaultProvider",
]
