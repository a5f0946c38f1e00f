"""Hierarchical persistent preferences: one text file per (scope, vendor, application).

Layout:
    <config dir>/
        <vendor>/
            <application>.prefs     # groups of name:value entries
            <application>/          # optional userdata directory

<application>.prefs:
    ; flprefs file format 1.0
    ; vendor: acme.test
    ; application: demo

    [.]
    last_file:/home/me/notes.txt

    [./window]
    # comments and blank lines written by hand are kept
    width:800
    height:600

The file format is private and may change; read and write it through
Preferences only.
"""

from flprefs.config import PrefsConfig, init_config, load_config
from flprefs.context import PrefsContext, default_context, set_default_context
from flprefs.models import Entry, FileAccess, Name, Root, new_uuid
from flprefs.node import Node
from flprefs.preferences import Preferences
from flprefs.root import RootNode

__all__ = [
    "Entry",
    "FileAccess",
    "Name",
    "Node",
    "Preferences",
    "PrefsConfig",
    "PrefsContext",
    "Root",
    "RootNode",
    "default_context",
    "init_config",
    "load_config",
    "new_uuid",
    "set_default_context",
]
