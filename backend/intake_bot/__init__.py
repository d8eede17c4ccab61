"""Telegram intake bot: contact verification, citizen requests and an admin panel."""
