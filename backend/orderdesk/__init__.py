"""Restaurant order dashboard backed by a Google spreadsheet."""
