"""
exam-guard - On-device exam integrity monitor

Watches webcam and microphone during a test attempt and periodically reports
cumulative violation counts. No video or audio leaves the machine.
"""

__version__ = "1.0.0"
