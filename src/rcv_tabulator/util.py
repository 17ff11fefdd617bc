import csv
import os
import pathlib

###############################################################
# constants

NAN = float("nan")

# label used for ballots that leave the count
EXHAUST = "exhaust"

########################
# helper funcs


class CSVLogger:
    def __init__(self, path, header_list):
        self.row_length = len(header_list)
        self.path = pathlib.Path(path)
        self.file = open(self.path, "w", newline="")
        self.writer = csv.writer(self.file, delimiter=",", quotechar='"', quoting=csv.QUOTE_ALL)
        self.write(header_list)

    def write(self, row_list):
        if len(row_list) != self.row_length:
            msg = f"CSVLogger.write ({self.path.name}) row list has length {len(row_list)}, "
            msg += f"doesn't match header list length ({self.row_length})"
            raise RuntimeError(msg)
        self.writer.writerow(row_list)
        self.file.flush()

    def close(self):
        self.file.flush()
        self.file.close()


def percent(part, whole):
    """Return `part` as a percentage of `whole`, or 0 when `whole` is zero."""
    if not whole:
        return 0.0
    return (part / whole) * 100


def verifyDir(dir_path, make_if_missing=True, error_msg_tail="is not an existing folder"):
    """
    Check that a directory exists and if missing, either error or create it.

    :param dir_path: directory path to verify
    :param make_if_missing: if True, create directory (and parents) if missing
    :param error_msg_tail: if make_if_missing is False and directory missing,
     raise with this error message after the dir_path.
    """
    if os.path.isdir(dir_path) is False:
        if make_if_missing:
            os.makedirs(dir_path)
        else:
            raise RuntimeError(f"{dir_path} {error_msg_tail}")


def to_camel(name):
    # option_id -> optionId
    head, *tail = name.split("_")
    return head + "".join(word.title() for word in tail)


def LD2DL(ld):
    # assumes all dicts have same keys, which they should in these use cases
    return {k: [dic[k] for dic in ld] for k in ld[0]}
