"""Utility functions for Backlog Forecast."""

import logging
import os.path

logger = logging.getLogger(__name__)


def extend_dict(d, e):
    """Extend dictionary d with entries from e, returning a new dictionary."""
    r = d.copy()
    r.update(e)
    return r


def get_extension(filename):
    """Get file extension from filename."""
    return os.path.splitext(filename)[1].lower()


def write_data_frame(data, output_files, name):
    """Write `data` to each of `output_files`, choosing the format from the
    file extension: `.json` writes a list of records, anything else CSV.
    """
    for output_file in output_files:
        output_extension = get_extension(output_file)
        logger.info("Writing %s data to %s", name, output_file)
        if output_extension == ".json":
            data.to_json(output_file, orient="records", date_format="iso")
        else:
            data.to_csv(output_file, header=True, index=False)
