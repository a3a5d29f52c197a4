"""
Test suite for thumbzone application.

This module contains all test cases for the application:
- Unit tests for models and services
- Unit tests for the Streamlit handlers
"""
