"""
Decision layer.

Components:
- session.py: Identity and the Session Context (who is acting)
- visibility.py: what an identity may ever see
- filtering.py: facet filters, sidebar selection and counts
- board.py: snapshot owner that recomputes both on every change
- errors.py / ports.py: error taxonomy and store interfaces
"""
