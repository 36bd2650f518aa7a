"""Download files from URLs and re-upload them to Google Drive."""
