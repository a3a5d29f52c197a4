"""
thumbzone - Thumbnail gallery web application with Streamlit

A web application for collecting video thumbnails with features including:
- Thumbnail upload with inline data URI storage in a document database
- Searchable, category-filtered gallery grid
- Edit, delete and download actions
- On-demand AI critique of a thumbnail
"""

__version__ = "0.1.0"
__author__ = "thumbzone"
__description__ = "Thumbnail gallery web application with Streamlit"
