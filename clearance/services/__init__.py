"""Services for the clearance workflow and its external collaborators."""
