"""Send a test email through one provider, configured from the environment.

Every ``EMAIL_*`` variable understood by
:meth:`email_service.config.ServiceConfig.from_env` is honoured.  The
recipients are read from ``EMAIL_TEST_TO_RECIPIENT``,
``EMAIL_TEST_CC_RECIPIENT`` and ``EMAIL_TEST_BCC_RECIPIENT``::

    python scripts/send_test_email.py smtp --attach notes.txt
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from email_service import MailService, ServiceConfig, ServiceProvider
from email_service.errors import MailError

LOGGER = logging.getLogger("send_test_email")


def _env_list(name: str) -> List[str]:
    value = os.environ.get(name, "").strip()
    return [value] if value else []


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "provider", choices=[p.value for p in ServiceProvider], help="provider to use"
    )
    parser.add_argument("--attach", type=Path, help="file to attach (text/plain)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    service = MailService(ServiceConfig.from_env())
    try:
        service.start_up()
    except MailError as exc:
        LOGGER.error("Unable to start the email service: %s", exc)
        return 1

    email = service.new_email()
    email.subject = "testing email_service - test message"
    email.plain_text_content = "This is an email_service test email using plain-text"
    email.html_content = (
        "<html><body>This is an <b>email_service</b> test email using "
        "<i>HTML</i></body></html>"
    )
    email.recipients = _env_list("EMAIL_TEST_TO_RECIPIENT")
    email.recipients_cc = _env_list("EMAIL_TEST_CC_RECIPIENT")
    email.recipients_bcc = _env_list("EMAIL_TEST_BCC_RECIPIENT")
    email.tags = ["admin_alert"]
    email.important = True

    with ExitStack() as stack:
        if args.attach:
            handle = stack.enter_context(open(args.attach, "rb"))
            email.add_attachment(args.attach.name, "text/plain", handle)
        try:
            service.send_email(email, args.provider)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Error sending via %s: %s", args.provider, exc)
            return 1

    LOGGER.info("All emails sent!")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
