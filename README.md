# ddnskit

Building blocks for keeping DNS records in step with the public IP
addresses of a machine: detecting the current address, reconciling the
records of a domain, filtering domains with boolean expressions and pinging
a Healthchecks.io check.

## Modules

- `ddnskit.pp`: `PP`, a small pretty printer that writes one line per
  message to a text stream, prefixed with an `Emoji` and indented by
  `inc_indent()`. Messages below the printer's `Level` (set with
  `set_level()`) are dropped; `info`, `notice`, `warning` and `error` print
  at the matching level.
- `ddnskit.ipnet`: `IPNetwork.IP4` and `IPNetwork.IP6`, with
  `describe()` (`"IPv4"`), `record_type()` (`"A"` / `"AAAA"`),
  `udp_network()` and `normalize_ip()`, which turns IPv4-mapped IPv6
  addresses into IPv4 for `IP4` and IPv4 addresses into IPv4-mapped IPv6
  for `IP6` (or returns `None` when that is impossible).
- `ddnskit.provider`: the abstract `Provider` and three kinds of it:
  `HTTP` (the response body is the address; `new_ipify()`),
  `CloudflareTrace` (a `field=value` line of a trace page;
  `new_cloudflare_trace()`) and `Local` (the local address the system
  picks to reach a remote UDP address; `new_local()`). Also
  `provider_name()`, `normalize_ip()` and `fetch()`, a one-shot HTTP(S)
  request that returns the body whatever the status code.
- `ddnskit.doh`: `DNSOverHTTPS`, which sends a TXT query over
  DNS-over-HTTPS and reads the single address in the answer
  (`new_cloudflare_doh()` asks for `whoami.cloudflare.` in class CHAOS).
  `new_dns_query()` and `parse_dns_response()` build and check the
  messages.
- `ddnskit.setter`: `Setter`, which makes a domain hold exactly one record
  for the wanted address through a `Handle` you implement
  (`list_records`, `update_record`, `delete_record`, `create_record`).
  It reuses a record already at the address or updates a stale one so
  that TTL and proxy settings survive, creates a record only when it has
  to, and deletes leftover and duplicate records. Passing `None` as the
  address deletes every record. `partition_records()` splits record IDs
  into those at the target and the rest, each sorted.
- `ddnskit.updater`: `update_ips()` detects the address of every network
  that has a provider in an `UpdateConfig` and sets it on that network's
  domains; `clear_ips()` deletes the records of those domains. After the
  first failed detection per network a few hints are printed; the
  module-level `message_should_display` remembers which have been shown.
- `ddnskit.monitor`: the abstract `Monitor` and `HealthChecks`, created
  with `new_health_checks(ppfmt, raw_url, max_retries=5)`. Each ping
  (`success`, `start`, `failure`, `exit_status`) is retried with doubling
  delays when the request cannot be sent; a response whose body is not
  `OK` fails at once. `success_all`, `start_all`, `failure_all` and
  `exit_status_all` notify every monitor in a list and return whether all
  succeeded.
- `ddnskit.domainexp`: `parse_expression()` turns an expression such as
  `is(example.com) || sub(example.org) && !is(www.example.org)` into a
  predicate on lower-case ASCII domain names (wildcards written as
  `*.example.com`). Constants are `true`/`false` and their short forms,
  operators are `!`, `&&`, `||` and parentheses. `tokenize()` and
  `to_ascii()` are available on their own; `tokenize()` raises
  `DomainExpressionError` on a lone `&` or `|`.
- `ddnskit.file`: `read_string()` reads a file under a root directory
  (absolute paths are taken relative to it) and returns its contents with
  surrounding whitespace removed.

Functions that can fail for reasons outside the caller's control report the
problem through the `PP` they are given and return `None` or `False`.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Example

```python
import sys

from ddnskit.ipnet import IPNetwork
from ddnskit.pp import PP, Emoji
from ddnskit.provider import new_cloudflare_trace

ppfmt = PP(sys.stdout)
provider = new_cloudflare_trace()
ip = provider.get_ip(ppfmt, IPNetwork.IP4)
if ip is not None:
    ppfmt.info(Emoji.INTERNET, f"Current IPv4 address: {ip}")
```

Domain filters:

```python
from ddnskit.domainexp import parse_expression

predicate = parse_expression(ppfmt, "sub(example.com) && !is(www.example.com)")
if predicate is not None:
    print(predicate("api.example.com"))  # True
```

## What it does not do

- There is no command-line program and no scheduler; you call the
  functions from your own code.
- There is no client for any DNS provider's API. `Setter` works only
  through a `Handle` you supply.
- Configuration is not read from the environment; you build an
  `UpdateConfig` yourself.