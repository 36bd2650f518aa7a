"""Google OAuth routes - consent redirect, callback, and a landing page."""
import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from drive_uploader.dependencies import get_auth_service, rate_limit
from drive_uploader.services.google_auth import AuthConfigurationError, GoogleAuthService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

_PAGE = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>
      body {{ font-family: Arial, sans-serif; text-align: center; padding-top: 50px; }}
      .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
      .success {{ color: #4CAF50; }}
      .error {{ color: #f44336; }}
      .btn {{ background-color: #4285F4; color: white; padding: 10px 20px; text-decoration: none;
              border-radius: 4px; display: inline-block; margin-top: 20px; }}
    </style>
  </head>
  <body>
    <div class="container">
{body}
    </div>
  </body>
</html>
"""


def _page(title: str, body: str) -> str:
    return _PAGE.format(title=html.escape(title), body=body)


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def home():
    return _page(
        "Google Drive Authentication",
        '      <h1>Google Drive Authentication</h1>\n'
        '      <p>Click the button below to authenticate with Google Drive:</p>\n'
        '      <a class="btn" href="/auth/google">Authenticate with Google</a>',
    )


@router.get("/auth/google", dependencies=[Depends(rate_limit)])
async def google_auth(auth: GoogleAuthService = Depends(get_auth_service)):
    """Redirect to Google's consent screen."""
    try:
        auth_url = auth.authorization_url()
    except AuthConfigurationError as e:
        logger.error("Cannot start Google OAuth: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    logger.info("Redirecting to Google Auth")
    return RedirectResponse(auth_url)


@router.get("/auth/google/callback", dependencies=[Depends(rate_limit)])
async def google_auth_callback(
    code: Optional[str] = None,
    auth: GoogleAuthService = Depends(get_auth_service),
):
    """Exchange the authorization code for tokens and persist them."""
    if not code:
        logger.error("No authorization code provided")
        return PlainTextResponse("No authorization code provided", status_code=400)

    try:
        logger.info("Processing authorization code from Google callback")
        await auth.exchange_code(code)
    except Exception as e:
        logger.error("Authentication failed: %s", e, exc_info=True)
        return HTMLResponse(
            _page(
                "Authentication Failed",
                '      <h1 class="error">Authentication Failed</h1>\n'
                f"      <p>Error: {html.escape(str(e))}</p>\n"
                "      <p>Please try again or contact support.</p>",
            ),
            status_code=500,
        )

    return HTMLResponse(
        _page(
            "Authentication Successful",
            '      <h1 class="success">Authentication Successful!</h1>\n'
            "      <p>Your Google Drive access has been configured successfully.</p>\n"
            "      <p>You can close this window and return to the application.</p>",
        )
    )
