#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import json
import urllib.parse

import aiohttp.web

MAX_PAYLOAD_KB = 64
MAX_PAYLOAD = MAX_PAYLOAD_KB * 1024
ERRONEOUS_PAYLOAD = "Erroneous payload received"


async def parse_formdata(body_type: str, request: aiohttp.web.BaseRequest) -> dict:
    # Start with query string data for seeding our data dictionary
    indata = {k: v for k, v in request.query.items()}

    if request.method in ["PUT", "POST"] and request.can_read_body:
        if request.content_length and request.content_length > MAX_PAYLOAD:
            raise ValueError("Form data payload too large, max %dkb allowed" % MAX_PAYLOAD_KB)
        body = await request.text()
        if body_type == "json":
            try:
                js = json.loads(body)
            except ValueError as e:
                raise ValueError(ERRONEOUS_PAYLOAD) from e
            # json data MUST be an dictionary object, {...}
            if not isinstance(js, dict):
                raise ValueError(ERRONEOUS_PAYLOAD)
            indata.update(js)
        elif request.headers.get("content-type", "").lower().startswith("application/x-www-form-urlencoded"):
            try:
                for key, val in urllib.parse.parse_qsl(body):
                    indata[key] = val
            except ValueError as e:
                raise ValueError(ERRONEOUS_PAYLOAD) from e
    return indata
