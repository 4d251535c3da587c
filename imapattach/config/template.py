"""Default configuration template.

This template is written to ~/.config/imapattach/config.toml
when running `imapattach config init`.
"""

CONFIG_TEMPLATE = """\
# imapattach configuration

debug = false

[connect]
host = "imap.example.com"
port = 993
ssl = true

[credentials]
username = "me@example.com"
# Prefer the IMAPATTACH_PASSWORD environment variable
password = ""

[download]
attachments_directory = "~/Attachments"
# Messages fetched per request
page_size = 100
# Regular expression searched for in each attachment filename
pattern = "\\\\.pdf$"
mailbox = "INBOX"
"""
