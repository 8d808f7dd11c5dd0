#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
AIR Model Downloader — fetch AI models by AIR URN

What it does
------------
• Parses AIR URNs:  urn:air:{ecosystem}:{type}:{source}:{id}[@{version}][:{layer}][.{format}]
• Resolves the file on the source (Civitai) with your API token.
• Streams to <file>.part with a progress bar, verifies size + SHA-256,
  then renames into place and writes <file>.metadata.json.
• --update <file>.metadata.json re-downloads only when the remote hash changed.

Install:  pip install -e .
Run:      python air_downloader.py --urn urn:air:flux1:lora:civitai:1075055@1206817 -t <TOKEN>
Update:   python air_downloader.py --update models/loras/flux1/civitai_1075055_1206817.safetensors.metadata.json
"""

import sys

from airdl.cli import main

if __name__ == "__main__":
    sys.exit(main())
