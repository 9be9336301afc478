#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.

"""
    Shows which addresses and wildcard domains a mailbox would be granted at login.
    Uses the same configuration file as the server, and the server's plugins
    (install the project with pip, or run with PYTHONPATH=server).

    Usage: python3 tools/resolve-aliases.py --config server/archiveaccess.yaml user@example.org
"""

import argparse
import asyncio
import logging
import sys

import yaml

import plugins.aliases
import plugins.configuration
import plugins.mailcow


async def resolve_mailbox(config: plugins.configuration.Configuration, mailbox: str, realname: bool) -> int:
    aliases = await plugins.mailcow.get_active_aliases(config.mailcow)
    if not aliases:
        print("No active aliases could be fetched from %s" % config.mailcow.host, file=sys.stderr)
        return 1
    result = plugins.aliases.resolve(mailbox, aliases)
    print("%d active aliases in mailcow" % len(aliases))
    print("Addresses routing to %s:" % mailbox)
    for address in sorted(result.addresses):
        print("  %s" % address)
    print("Wildcard domains routing to %s:" % mailbox)
    for domain in sorted(result.wildcard_domains):
        print("  @%s" % domain)
    if realname:
        name = await plugins.mailcow.get_mailbox_realname(config.mailcow, mailbox)
        print("Real name: %s" % (name or "(not set)"))
    return 0


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--config", default="archiveaccess.yaml", help="Configuration file to load (default: archiveaccess.yaml)")
    parser.add_argument("--realname", action="store_true", help="Also look up the mailbox display name")
    parser.add_argument("--verbose", action="store_true", help="Log API problems to stderr")
    parser.add_argument("mailbox", help="Mailbox address to resolve")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    with open(args.config) as f:
        config = plugins.configuration.Configuration(yaml.safe_load(f))
    try:
        config.mailcow.validate()
    except ValueError as e:
        print(e, file=sys.stderr)
        sys.exit(2)
    sys.exit(asyncio.run(resolve_mailbox(config, args.mailbox.strip().lower(), args.realname)))


if __name__ == "__main__":
    main()
