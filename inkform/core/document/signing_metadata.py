"""
Signing-flow payload stored in the PDF keywords.

Format: ``"free-pdf-v1 " + base64(json)`` where the JSON is
``{"v": 1, "signers": [{"n", "t"}], "expectedSigners": [{"n", "e", "o"}], ...}``.
An expected signer's name is the label of the signature slot it fills,
not the person's legal name.
"""
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

KEYWORDS_PREFIX = "free-pdf-v1 "
PAYLOAD_VERSION = 1
PRODUCER_MARKERS = ("Inkform", "Free PDF Editor")


@dataclass(frozen=True)
class Signer:
    name: str
    timestamp: str = ""


@dataclass(frozen=True)
class ExpectedSigner:
    name: str
    email: Optional[str] = None
    order: Optional[int] = None


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    body: str


@dataclass
class SigningMetadata:
    signers: List[Signer] = field(default_factory=list)
    expected_signers: List[ExpectedSigner] = field(default_factory=list)
    email_template: Optional[EmailTemplate] = None
    original_sender_email: Optional[str] = None
    completion_to_emails: Optional[List[str]] = None
    completion_cc_emails: Optional[List[str]] = None
    completion_bcc_emails: Optional[List[str]] = None


def _clean_emails(emails) -> List[str]:
    if not isinstance(emails, list):
        return []
    return [e.strip() for e in emails if isinstance(e, str) and e.strip()]


def build_signing_keywords(metadata: SigningMetadata) -> str:
    """Encode signing metadata into a keywords string."""
    data = {
        'v': PAYLOAD_VERSION,
        'signers': [{'n': s.name or '', 't': s.timestamp or ''} for s in metadata.signers],
        'expectedSigners': [],
    }
    for i, expected in enumerate(metadata.expected_signers):
        entry = {'n': expected.name or ''}
        if expected.email is not None:
            entry['e'] = expected.email
        entry['o'] = expected.order if isinstance(expected.order, int) else i + 1
        data['expectedSigners'].append(entry)

    if metadata.email_template is not None:
        data['emailTemplate'] = {
            'subject': metadata.email_template.subject,
            'body': metadata.email_template.body,
        }
    if metadata.original_sender_email and metadata.original_sender_email.strip():
        data['originalSenderEmail'] = metadata.original_sender_email.strip()
    for key, emails in (('completionToEmails', metadata.completion_to_emails),
                        ('completionCcEmails', metadata.completion_cc_emails),
                        ('completionBccEmails', metadata.completion_bcc_emails)):
        cleaned = _clean_emails(emails)
        if cleaned:
            data[key] = cleaned

    raw = json.dumps(data, separators=(',', ':'), ensure_ascii=False).encode('utf-8')
    return KEYWORDS_PREFIX + base64.b64encode(raw).decode('ascii')


def parse_signing_metadata(keywords: Optional[str]) -> Optional[SigningMetadata]:
    """
    Decode a keywords string.

    Returns:
        The metadata, or None if the keywords are not ours or are corrupt
    """
    if not isinstance(keywords, str) or not keywords.startswith(KEYWORDS_PREFIX):
        return None
    raw = keywords[len(KEYWORDS_PREFIX):].strip()
    if not raw:
        return SigningMetadata()

    try:
        data = json.loads(base64.b64decode(raw, validate=True).decode('utf-8'))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        logger.debug("Ignoring unreadable signing metadata", exc_info=True)
        return None
    if not isinstance(data, dict) or data.get('v') != PAYLOAD_VERSION:
        return None

    signers = [Signer(name=s.get('n') or '', timestamp=s.get('t') or '')
               for s in data.get('signers') or []]
    expected = [
        ExpectedSigner(
            name=e.get('n') or '',
            email=e.get('e'),
            order=e['o'] if isinstance(e.get('o'), int) else i + 1,
        )
        for i, e in enumerate(data.get('expectedSigners') or [])
    ]

    template = data.get('emailTemplate')
    email_template = None
    if (isinstance(template, dict) and isinstance(template.get('subject'), str)
            and isinstance(template.get('body'), str)):
        email_template = EmailTemplate(template['subject'], template['body'])

    sender = data.get('originalSenderEmail')
    sender = sender.strip() if isinstance(sender, str) and sender.strip() else None

    def emails(key):
        value = data.get(key)
        return _clean_emails(value) if isinstance(value, list) else None

    return SigningMetadata(
        signers=signers,
        expected_signers=expected,
        email_template=email_template,
        original_sender_email=sender,
        completion_to_emails=emails('completionToEmails'),
        completion_cc_emails=emails('completionCcEmails'),
        completion_bcc_emails=emails('completionBccEmails'),
    )


def has_signing_metadata(metadata: Optional[dict]) -> bool:
    """Whether PyMuPDF document metadata carries our signing payload or producer."""
    metadata = metadata or {}
    keywords = metadata.get('keywords')
    if isinstance(keywords, str) and keywords.startswith(KEYWORDS_PREFIX):
        return True
    producer = metadata.get('producer')
    return isinstance(producer, str) and any(m in producer for m in PRODUCER_MARKERS)
