"""Delivery adapters exposing the notification core."""
