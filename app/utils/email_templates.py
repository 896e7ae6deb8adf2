from datetime import datetime, timezone
from html import escape

from app.config import settings


def _layout(title: str, body: str) -> str:
    year = datetime.now(timezone.utc).year
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8" /><title>{title}</title></head>
<body style="margin:0; padding:0; font-family:Arial, Helvetica, sans-serif; color:#1f2937;">
  <main style="padding:32px; max-width:720px;">
{body}
    <p style="margin:32px 0 0 0; font-size:13px; color:#4b5563;">
      If you need any assistance, contact hsm@support.com.
    </p>
  </main>
  <footer style="padding:24px 32px; border-top:1px solid #e5e7eb; font-size:12px; color:#6b7280;">
    &copy; {year} HSM. All rights reserved.
  </footer>
</body>
</html>"""


def _button(href: str, label: str) -> str:
    return (
        f'<p style="margin:24px 0;"><a href="{href}" style="display:inline-block; '
        f'padding:10px 16px; background-color:#2563eb; color:#ffffff; '
        f'text-decoration:none; border-radius:4px;">{label}</a></p>'
    )


# ─── Account ──────────────────────────────────────────────────────────────────
def welcome_user_template(user_name: str) -> str:
    explore_url = f"{settings.CLIENT_URL}/customer/explore"
    return _layout("Welcome to HSM", f"""
    <p>Hi <strong>{escape(user_name)}</strong>,</p>
    <p>Welcome to <strong>HSM</strong>. Your account has been successfully created.
    You can now book verified professionals for repairs, maintenance and cleaning.</p>
    {_button(explore_url, "Explore Services")}""")


def new_provider_registered_template(admin_name: str, provider_name: str, provider_email: str) -> str:
    return _layout("New Provider Registered", f"""
    <p>Hi <strong>{escape(admin_name)}</strong>,</p>
    <p>A new provider has just registered and may need review:</p>
    <p><strong>{escape(provider_name)}</strong> &lt;{escape(provider_email)}&gt;</p>""")


# ─── Password ─────────────────────────────────────────────────────────────────
def forgot_password_template(user_name: str, token: str) -> str:
    reset_url = f"{settings.CLIENT_URL}/auth/reset-password?token={token}"
    return _layout("Password Reset", f"""
    <p>Hi <strong>{escape(user_name)}</strong>,</p>
    <p>We received a request to reset your password. The link below is valid for
    {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes and can be used once.</p>
    {_button(reset_url, "Reset Password")}
    <p>If you did not request this, you can ignore this email.</p>""")


# ─── Restriction ──────────────────────────────────────────────────────────────
def user_restricted_template(user_name: str, reason: str) -> str:
    return _layout("Account Restricted", f"""
    <p>Hi <strong>{escape(user_name)}</strong>,</p>
    <p>Your account has been restricted for the following reason:</p>
    <p><em>{escape(reason)}</em></p>
    <p>You can still sign in and view your profile.</p>""")


def user_restriction_lifted_template(user_name: str) -> str:
    return _layout("Account Restriction Lifted", f"""
    <p>Hi <strong>{escape(user_name)}</strong>,</p>
    <p>The restriction on your account has been lifted. Full access is restored.</p>""")
