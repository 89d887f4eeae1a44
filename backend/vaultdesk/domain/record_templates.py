"""Built-in Record Type Templates - Used when the vault offers no schema"""
from typing import Any, Dict, List, Optional

from .models import RecordSchema


RECORD_TYPE_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "login": {
        "$id": "login",
        "label": "Login",
        "description": "Website or application credentials",
        "fields": [
            {"$ref": "login", "required": True},
            {"$ref": "password", "required": True},
            {"$ref": "url"},
            {"$ref": "oneTimeCode"},
        ],
    },
    "contact": {
        "$id": "contact",
        "label": "Contact",
        "description": "Person with phone, email and address",
        "fields": [
            {"$ref": "name", "required": True, "value": [{"first": "", "middle": "", "last": ""}]},
            {"$ref": "text", "label": "company"},
            {"$ref": "email"},
            {"$ref": "phone", "value": [{"region": "", "number": "", "ext": "", "type": ""}]},
            {"$ref": "addressRef"},
        ],
    },
    "address": {
        "$id": "address",
        "label": "Address",
        "description": "Postal address",
        "fields": [
            {"$ref": "address", "required": True},
        ],
    },
    "bankCard": {
        "$id": "bankCard",
        "label": "Payment Card",
        "description": "Credit or debit card",
        "fields": [
            {"$ref": "paymentCard", "required": True},
            {"$ref": "text", "label": "cardholderName"},
            {"$ref": "pinCode"},
            {"$ref": "addressRef"},
        ],
    },
    "bankAccount": {
        "$id": "bankAccount",
        "label": "Bank Account",
        "description": "Account and routing numbers with online banking login",
        "fields": [
            {"$ref": "bankAccount", "required": True},
            {"$ref": "name", "value": [{"first": "", "last": ""}]},
            {"$ref": "login"},
            {"$ref": "password"},
            {"$ref": "url"},
        ],
    },
    "databaseCredentials": {
        "$id": "databaseCredentials",
        "label": "Database",
        "description": "Database host and credentials",
        "fields": [
            {"$ref": "text", "label": "type"},
            {"$ref": "host", "required": True},
            {"$ref": "login"},
            {"$ref": "password"},
        ],
    },
    "encryptedNotes": {
        "$id": "encryptedNotes",
        "label": "Secure Note",
        "description": "Free-form secured text",
        "top_level_fields": ["title"],
        "fields": [
            {"$ref": "note", "required": True},
            {"$ref": "date"},
        ],
    },
    "membership": {
        "$id": "membership",
        "label": "Membership",
        "description": "Membership or loyalty account",
        "fields": [
            {"$ref": "accountNumber"},
            {"$ref": "name", "value": [{"first": "", "last": ""}]},
            {"$ref": "password"},
        ],
    },
    "serverCredentials": {
        "$id": "serverCredentials",
        "label": "Server",
        "description": "Server host and credentials",
        "fields": [
            {"$ref": "host", "required": True},
            {"$ref": "login"},
            {"$ref": "password"},
        ],
    },
    "softwareLicense": {
        "$id": "softwareLicense",
        "label": "Software License",
        "description": "License key and product details",
        "fields": [
            {"$ref": "licenseNumber", "required": True},
            {"$ref": "text", "label": "productVersion"},
            {"$ref": "text", "label": "licensedTo"},
            {"$ref": "date", "label": "dateActive"},
            {"$ref": "expirationDate"},
        ],
    },
    "sshKeys": {
        "$id": "sshKeys",
        "label": "SSH Key",
        "description": "Key pair with login and host",
        "fields": [
            {"$ref": "login"},
            {"$ref": "keyPair", "required": True},
            {"$ref": "password", "label": "passphrase"},
            {"$ref": "host"},
        ],
    },
}


def get_record_template(record_type: str) -> Optional[RecordSchema]:
    """Parsed template for a record type, or None if it is not built in"""
    raw = RECORD_TYPE_TEMPLATES.get(record_type)
    if raw is None:
        return None
    return RecordSchema.model_validate(raw)


def list_record_types() -> List[Dict[str, str]]:
    """Record type options for selection lists"""
    return [
        {
            "value": record_type,
            "label": raw.get("label", record_type),
            "description": raw.get("description", ""),
        }
        for record_type, raw in RECORD_TYPE_TEMPLATES.items()
    ]
