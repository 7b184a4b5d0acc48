"""Protocol calldata builders."""
