# -*- coding: utf-8 -*-
"""icsjournal package.

Modules:
    models:     Entry and Attachment records, UIDs, canonical filenames.
    codec:      iCalendar (VJOURNAL) parsing and serialization.
    crypto:     Password digests, key derivation and text encryption.
    security:   KeyStore: passphrase-wrapped system key.
    datafile:   EntryFile: one .ics / .ics.enc file on disk.
    repository: Repository: directory scan, indices, save/delete.
    logic:      App logic that composes repository + security.
    config:     JSON configuration and logging setup.
    cli:        click-based command-line interface.
"""

__version__ = "1.0.0"

__all__ = ["codec", "config", "crypto", "datafile", "logic", "models", "repository", "security"]
