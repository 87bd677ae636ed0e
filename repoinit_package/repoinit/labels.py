"""Creates the repository's issue labels."""

import logging
from typing import Any, Dict, List, Tuple


class LabelInstaller:
    """Creates each configured label unless one with the same name exists."""

    def __init__(self, client, labels: List[Dict[str, Any]]):
        self.client = client
        self.labels = labels
        self.logger = logging.getLogger('repoinit.labels')

    def install(self) -> Tuple[List[str], List[str]]:
        """
        Returns:
            Tuple of (created label names, skipped label names)
        """
        # GitHub label names are case-insensitive
        existing = {name.lower() for name in self.client.list_labels()}
        created, skipped = [], []

        for label in self.labels:
            name = label['name']
            if name.lower() in existing:
                self.logger.debug(f"Label already exists: {name}")
                skipped.append(name)
                continue

            color = str(label.get('color', 'ededed')).lstrip('#')
            self.client.create_label(name, color, label.get('description', '') or '')
            existing.add(name.lower())
            created.append(name)
            self.logger.info(f"Created label: {name}")

        return created, skipped
