"""
RC Guidance Mobile - Cross-platform Kivy UI for the guidance server.

This module provides a Kivy-based user interface that works on:
- Desktop (Windows, macOS, Linux)
- Mobile (Android)

Features:
- Session creation against a guidance server
- Live camera preview while frames stream to the server
- One-shot calibration captures
- Ranked completion times

The application class lives in rcguidance.mobile.app.
"""
