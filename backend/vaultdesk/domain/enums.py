"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class Role(str, Enum):
    """Role of the current user on a ticket"""
    REQUESTER = "REQUESTER"
    ADMINISTRATOR = "ADMINISTRATOR"


class VaultAction(str, Enum):
    """Secret-management actions a ticket can request"""
    RECORD_ADD = "record-add"
    RECORD_UPDATE = "record-update"
    RECORD_PERMISSION = "record-permission"
    SHARE_RECORD = "share-record"
    SHARE_FOLDER = "share-folder"


class InputKind(str, Enum):
    """Editing control kinds for a field descriptor"""
    TEXT = "text"
    MASKED = "masked"
    URL = "url"
    EMAIL = "email"
    PHONE = "tel"
    DATE = "date"
    DATETIME = "datetime-local"
    SELECT = "select"
    CHECKBOX = "checkbox"
    REFERENCE = "reference"


class CompositeKind(str, Enum):
    """Stored field types whose value is a structured object"""
    NAME = "name"
    PHONE = "phone"
    ADDRESS = "address"
    PAYMENT_CARD = "paymentCard"
    BANK_ACCOUNT = "bankAccount"
    KEY_PAIR = "keyPair"
    HOST = "host"


class ReferenceKind(str, Enum):
    """Field types that point at another vault record"""
    ADDRESS_REF = "addressRef"
    FILE_REF = "fileRef"
    CARD_REF = "cardRef"


class AddressCacheState(str, Enum):
    """Lifecycle of one address reference lookup"""
    LOADING = "LOADING"
    RESOLVED = "RESOLVED"
    NOT_FOUND = "NOT_FOUND"
    ERROR = "ERROR"


class TransitionPolicy(str, Enum):
    """How the edit buffer is rebuilt on a record type change"""
    RETURN_TO_ORIGINAL = "RETURN_TO_ORIGINAL"
    UPDATE_BLANK = "UPDATE_BLANK"
    CREATE_CARRY_FORWARD = "CREATE_CARRY_FORWARD"


class TransitionOrigin(str, Enum):
    """Who started a record type transition"""
    USER = "USER"
    RESTORE = "RESTORE"


class WorkflowState(str, Enum):
    """Approval lifecycle of a ticket's request"""
    EDITING_REQUESTER = "EDITING_REQUESTER"
    SAVED = "SAVED"
    EDITING_ADMINISTRATOR = "EDITING_ADMINISTRATOR"
    EXECUTED = "EXECUTED"
    REJECTED = "REJECTED"
    CLEARED = "CLEARED"


class WorkflowEvent(str, Enum):
    """Events that move the approval lifecycle"""
    SAVE = "SAVE"
    OPEN_STORED = "OPEN_STORED"
    EXECUTE = "EXECUTE"
    REJECT = "REJECT"
    CLEAR = "CLEAR"
    RESET = "RESET"


class StoredRequestStatus(str, Enum):
    """Status recorded on a stored request document"""
    PENDING = "pending"
