"""
Website Cloning Code Generation

A pipeline that turns a reference bundle (screenshots, captured markup and a
short intent) into a multi-file source project by driving a generative model,
repairing truncated output and refining the result toward the screenshots.
"""

__version__ = "0.1.0"
