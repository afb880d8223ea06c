"""README index, scanning, authoring and lint."""
