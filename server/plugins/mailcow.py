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
    Read-only mailcow API client.
    Every call here fails soft: if the API cannot be reached, times out, answers with
    an error or with something that is not JSON, the caller gets None (or an empty list)
    and the user simply logs in without any extra archive access.
    To make this work, create a read-only API key in the mailcow admin UI and
    copy it to your archiveaccess.yaml:
    mailcow:
      api_key: ABCDEF-123456
"""

import asyncio
import logging
import typing
import urllib.parse

import aiohttp.client

import plugins.aliases
import plugins.configuration

logger = logging.getLogger("mailcow")


async def query_api(config: plugins.configuration.MailcowConfig, path: str) -> typing.Any:
    """Runs a GET against the mailcow API and returns the decoded JSON, or None if anything went wrong"""
    url = config.api_url(path)
    headers = {"Accept": "application/json", "X-API-Key": config.api_key}
    timeout = aiohttp.ClientTimeout(total=config.timeout)
    try:
        async with aiohttp.client.request("GET", url, headers=headers, timeout=timeout) as rv:
            rv.raise_for_status()
            # mailcow does not always label its responses properly, so accept any content type
            return await rv.json(content_type=None)
    except asyncio.TimeoutError:
        logger.warning("mailcow API request to %s timed out after %ss", url, config.timeout)
    except aiohttp.ClientError as e:
        logger.warning("mailcow API request to %s failed: %s", url, e)
    except ValueError as e:
        logger.warning("mailcow API at %s did not return valid JSON: %s", url, e)
    return None


async def get_active_aliases(config: plugins.configuration.MailcowConfig) -> typing.List[plugins.aliases.AliasRecord]:
    """Fetches the whole alias table and returns the active, well-formed aliases in it"""
    js = await query_api(config, "v1/get/alias/all")
    if not isinstance(js, list):
        if js is not None:
            logger.warning("mailcow alias list is not a list (got %s), ignoring it", type(js).__name__)
        return []
    aliases = []
    for doc in js:
        alias = plugins.aliases.AliasRecord.from_api(doc)
        if alias is None:
            logger.debug("Skipping malformed alias entry: %r", doc)
            continue
        if alias.active:
            aliases.append(alias)
    return aliases


async def get_mailbox_realname(config: plugins.configuration.MailcowConfig, mailbox: str) -> typing.Optional[str]:
    """Returns the display name set for a mailbox in mailcow, if there is one"""
    if not mailbox:
        return None
    js = await query_api(config, "v1/get/mailbox/%s" % urllib.parse.quote(mailbox, safe="@"))
    if isinstance(js, dict):
        name = js.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
    return None
