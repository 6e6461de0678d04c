import html
import smtplib
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List

from clubdues.core.config import settings

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    return all([settings.SMTP_HOST, settings.SMTP_USER, settings.SMTP_PASSWORD, settings.FROM_EMAIL])


def _send_email(to_email: str, subject: str, plain_text: str, html_text: str) -> None:
    """Low-level helper to send one email via SMTP."""
    if not smtp_configured():
        logger.warning("SMTP not fully configured; skipping email to %s.", to_email)
        return

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.FROM_EMAIL
    msg["To"] = to_email
    if settings.REPLY_TO_EMAIL:
        msg["Reply-To"] = settings.REPLY_TO_EMAIL

    msg.attach(MIMEText(plain_text, "plain"))
    msg.attach(MIMEText(html_text, "html"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT or 587) as server:
        server.ehlo()
        server.starttls()
        server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.sendmail(settings.FROM_EMAIL, to_email, msg.as_string())


def send_reconciliation_report(to_emails: List[str], report: dict) -> None:
    """Email treasurers what the scheduled reconciliation sweep repaired.

    ``report`` is ``SweepReport.as_dict()``. Only call this when the sweep
    changed something.
    """
    if not to_emails:
        return

    subject = "Club Dues - Reconciliation Sweep Report"
    changed_dues = report.get("changed_dues", [])

    # ---- plain text --------------------------------------------------------
    lines = [
        "Club Dues Ledger - Reconciliation Sweep Report",
        "",
        f"Dues checked: {report['dues_checked']} ({report['dues_changed']} status changes)",
        f"Members checked: {report['members_checked']} ({report['balances_changed']} balances corrected)",
        "",
    ]
    if changed_dues:
        lines.append(f"STATUS CHANGES ({len(changed_dues)}):")
        for item in changed_dues:
            lines.append(
                f"  - {item['member_name']}: {item['reference']} {item['from_status']} -> {item['to_status']}"
            )
        lines.append("")
    lines.append("This is an automated notification from the club dues system.")
    plain_text = "\n".join(lines)

    # ---- HTML --------------------------------------------------------------
    rows = ""
    for item in changed_dues:
        rows += (
            f'<tr><td style="padding:6px 12px;border-bottom:1px solid #e2e8f0;">{html.escape(item["member_name"])}</td>'
            f'<td style="padding:6px 12px;border-bottom:1px solid #e2e8f0;">{html.escape(item["reference"])}</td>'
            f'<td style="padding:6px 12px;border-bottom:1px solid #e2e8f0;">{item["from_status"]} &rarr; {item["to_status"]}</td></tr>'
        )

    changes_section = ""
    if changed_dues:
        changes_section = f"""
        <h3 style="color:#1d4ed8;margin-top:24px;">Status Changes ({len(changed_dues)})</h3>
        <table style="width:100%;border-collapse:collapse;font-size:14px;">
          <tr style="background:#eff6ff;">
            <th style="padding:8px 12px;text-align:left;">Member</th>
            <th style="padding:8px 12px;text-align:left;">Reference</th>
            <th style="padding:8px 12px;text-align:left;">Change</th>
          </tr>
          {rows}
        </table>"""

    html_text = f"""
    <html>
    <body style="font-family:Arial,sans-serif;color:#1e3a5f;background:#f0f4ff;padding:24px;">
      <div style="max-width:560px;margin:0 auto;background:#ffffff;border-radius:12px;
                  border:2px solid #bfdbfe;padding:32px;">
        <h2 style="color:#1d4ed8;margin-bottom:4px;">Reconciliation Sweep Report</h2>
        <p style="font-size:13px;color:#64748b;margin-top:0;">Club Dues Ledger</p>
        <p>Dues checked: <strong>{report['dues_checked']}</strong> ({report['dues_changed']} status changes)<br/>
           Members checked: <strong>{report['members_checked']}</strong> ({report['balances_changed']} balances corrected)</p>
        {changes_section}
        <p style="font-size:12px;color:#94a3b8;margin-top:24px;">
          This is an automated notification. Stale statuses usually mean a status update failed after a payment was saved.
        </p>
      </div>
    </body>
    </html>
    """

    for email_addr in to_emails:
        try:
            _send_email(email_addr, subject, plain_text, html_text)
            logger.info("Reconciliation report email sent to %s", email_addr)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send reconciliation report to %s", email_addr)
