"""Mark forwarded messages in the mailbox: read, plus the marker label."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from gmail2tg.application.ports.mailbox import LabelChange, Mailbox
from gmail2tg.domain.errors import MailboxError

FORWARDED_LABEL_NAME = "TG_FORWARDED"
UNREAD_LABEL_ID = "UNREAD"


class LabelReconciler:
    """Keeps a message's remote label state in line with local processing.

    The marker label is only for people browsing the mailbox. Dedup relies
    solely on the processed set, so a missing label (degraded mode) never
    stops forwarding.
    """

    def __init__(self, mailbox: Mailbox, label_name: str = FORWARDED_LABEL_NAME) -> None:
        self.mailbox = mailbox
        self.label_name = label_name

    def ensure_marker_label(self) -> Optional[str]:
        """Find or create the marker label. Returns its id, or None if unavailable."""
        try:
            for label in self.mailbox.list_labels():
                if label.name == self.label_name:
                    logger.info(f"Marker label '{self.label_name}' found ({label.label_id})")
                    return label.label_id

            created = self.mailbox.create_label(self.label_name)
            logger.info(f"Marker label '{self.label_name}' created ({created.label_id})")
            return created.label_id
        except MailboxError as e:
            logger.warning(
                f"Could not find or create label '{self.label_name}', "
                f"continuing without it: {e}"
            )
            return None

    def reconcile(self, message_id: str, label_id: Optional[str]) -> None:
        """Mark the message read and add the marker label when there is one.

        Re-applying to an already reconciled message is a no-op remotely.
        Raises MailboxError if the modify request fails.
        """
        change = LabelChange(
            add=[label_id] if label_id else [],
            remove=[UNREAD_LABEL_ID],
        )
        self.mailbox.modify(message_id, change)
        logger.debug(f"Reconciled {message_id} (label={'yes' if label_id else 'no'})")
