"""Coaching Attendance package.

This package is organized by feature modules (sessions, attendance,
statistics, views) with a thin Flask controller layer over async
services that talk to the institute's attendance API.
"""
