#!/usr/bin/env python3
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

"""Archive access server - mailbox logins with mailcow alias based access grants"""
import argparse
import asyncio
import importlib
import json
import logging
import os
import sys
import traceback
import typing
import uuid

import aiohttp.web
import yaml

import plugins.configuration
import plugins.emailquery
import plugins.formdata
import plugins.server
import plugins.session

ARCHIVEACCESS_VERSION = "0.1.0"


# Certain environments such as MinGW-w64 will not register as a TTY and uses buffered output.
# In such cases, we need to force a flush of each print, or nothing will show.
if not sys.stdout.buffer.isatty():
    import functools
    print = functools.partial(print, flush=True)


def make_logger(name: str, level: typing.Optional[str]) -> typing.Optional[logging.Logger]:
    if not level:
        return None
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.addHandler(logging.StreamHandler())
    return logger


class Server(plugins.server.BaseServer):
    """Main server class, responsible for handling requests"""

    def _load_endpoint(self, subdir):
        basedir = os.path.dirname(os.path.realpath(__file__))
        for endpoint_file in sorted(os.listdir(os.path.join(basedir, subdir))):
            if endpoint_file.endswith(".py"):
                endpoint = endpoint_file[:-3]
                m = importlib.import_module(f"{subdir}.{endpoint}")
                if hasattr(m, "register"):
                    self.handlers[endpoint] = m.register(self)
                    print(f"Registered endpoint /api/{endpoint}")
                else:
                    print(f"Could not find entry point 'register()' in {endpoint_file}, skipping!")

    def __init__(self, args: argparse.Namespace):
        print("==== Archive Access Server (v/%s) starting... ====" % ARCHIVEACCESS_VERSION)
        # Load configuration
        with open(args.config) as f:
            yml = yaml.safe_load(f)
        self.config = plugins.configuration.Configuration(yml)
        # Bail out now rather than at the first login if the email query cannot work
        plugins.emailquery.check_config(self.config)
        self.data = plugins.configuration.InterData()
        self.handlers = dict()
        self.server = None
        self.version = ARCHIVEACCESS_VERSION
        self.stop_event = asyncio.Event()

        # Load each URL endpoint
        if args.testendpoints:
            print("** Loading additional testing endpoints **")
            self._load_endpoint("testendpoints")
            print()
        self._load_endpoint("endpoints")

        make_logger("mailcow", args.mailcowlog)
        self.api_logger = make_logger("archiveaccess.apilog", args.apilog)

    async def handle_request(self, request: aiohttp.web.BaseRequest) -> aiohttp.web.Response:
        """Generic handler for all incoming HTTP requests"""

        # Define response headers first...
        headers = {
            "Server": "Archive Access Server/%s" % ARCHIVEACCESS_VERSION,
        }

        if self.api_logger:
            self.api_logger.info(request.raw_path)

        # Support URLs of form /api/handler/extra?query
        parts = request.path.split("/")
        if len(parts) < 3:
            return aiohttp.web.Response(headers=headers, status=404, text="API Endpoint not found!")
        handler = parts[2]
        body_type = "form"
        if handler.endswith(".json"):
            body_type = "json"
            handler = handler[:-5]

        # Parse form data if any
        try:
            indata = await plugins.formdata.parse_formdata(body_type, request)
            if self.api_logger:
                self.api_logger.info(indata)
        except ValueError as e:
            return aiohttp.web.Response(headers=headers, status=400, text=str(e))

        # Find a handler, or 404
        if handler not in self.handlers:
            return aiohttp.web.Response(headers=headers, status=404, text="API Endpoint not found!")

        session = plugins.session.get_session(self, request)
        try:
            # Wait for endpoint response. This is typically JSON in case of success,
            # but could be a custom response, which we just pass along to the client.
            output = await self.handlers[handler].exec(self, session, indata)
            if isinstance(output, aiohttp.web.Response):
                return output
            if output:
                jsout = json.dumps(output, indent=2)
                headers["content-type"] = "application/json"
                return aiohttp.web.Response(headers=headers, status=200, text=jsout)
            return aiohttp.web.Response(headers=headers, status=404, text="Content not found")
        # If a handler hit an exception, we need to print that exception somewhere,
        # either to the web client or stderr:
        except Exception:
            err = traceback.format_exc()
            # By default, we print the traceback to the user, for easy debugging.
            if self.config.ui.traceback:
                return aiohttp.web.Response(headers=headers, status=500, text="API error occurred: \n" + err)
            # Otherwise every line of the traceback goes to stderr prefixed by a short error ID,
            # which the client gets to report back to the admin.
            eid = str(uuid.uuid4())[:18]
            sys.stderr.write("API Endpoint %s got into trouble (%s): \n" % (request.path, eid))
            for line in err.split("\n"):
                sys.stderr.write("%s: %s\n" % (eid, line))
            return aiohttp.web.Response(
                headers=headers, status=500, text="API error occurred. The application journal will have "
                                                  "information. Error ID: %s" % eid
            )

    async def server_loop(self):
        self.server = aiohttp.web.Server(self.handle_request)
        runner = aiohttp.web.ServerRunner(self.server)
        await runner.setup()
        site = aiohttp.web.TCPSite(runner, self.config.server.ip, self.config.server.port)
        await site.start()
        print("==== Serving archive access at %s:%s ====" % (self.config.server.ip, self.config.server.port))
        await self.stop_event.wait()
        await runner.cleanup()

    def run(self):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self.server_loop())
        except KeyboardInterrupt:
            self.stop_event.set()
        loop.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--config",
        help="Configuration file to load (default: archiveaccess.yaml)",
        default="archiveaccess.yaml",
    )
    parser.add_argument(
        "--mailcowlog",
        help="mailcow API client log level (e.g. INFO or DEBUG)",
        default="WARNING",
    )
    parser.add_argument(
        "--apilog",
        help="api log level (e.g. INFO or DEBUG)",
    )
    parser.add_argument(
        "--testendpoints",
        action="store_true",
        help="Enable test endpoints",
    )
    cliargs = parser.parse_args()
    Server(cliargs).run()
