# distriindex

An indexer and query service for the DistriAI compute market on Solana. It
decodes the market program's Borsh-encoded accounts, instructions and events
into Python objects. It stores machines, orders, rewards and per-machine
rewards in a SQL database through SQLAlchemy, and serves them over a small
JSON HTTP API built on Flask.

## Installation

```
pip install .
```

The server connects to MySQL through the `mysql+pymysql` SQLAlchemy dialect.
That driver is not installed with the package, so install it yourself:

```
pip install pymysql
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Configuration

The service reads a YAML file. By default this is `config/config.yml`. When the
environment variable `APP_ENV` is `dev`, the service reads `config/config-dev.yml`
instead. You can also pass a path with `--config`. Keys match without regard
to case, underscores or hyphens, so `program_id` and `programid` both work.

```yaml
server:
  mode: release        # "debug" turns on Flask's debug mode
  port: "8080"
database:
  host: localhost
  port: "3306"
  username: user
  password: password
  database: distriai
redis:
  addr: localhost:6379
  password: password
  db: 0
mailbox:
  host: smtp.example.com
  port: 465
  username: noreply@example.com
  password: password
chain:
  rpc: http://localhost:8899
  program_id: <program public key, base58>
  faucet_private_key: placeholder
  dist: <token mint public key, base58>
  dist_decimals: 9
  dist_faucet_amount: 10
```

## Running

```
distriindex [--config PATH]
```

The command loads the configuration and opens the MySQL database with a pool
of ten connections. It then drops and recreates the `machines`, `orders`,
`rewards` and `reward_machines` tables, creates any other missing tables, and
serves the API on `0.0.0.0`. The port comes from `server.port` and defaults to
8080.

Every endpoint takes `POST` with a JSON body. Responses have the form
`{"Code": 1, "Msg": "success", "Data": ...}`. On failure, `Code` is `0` and
`Msg` gives the reason. Endpoints that act on one account read it from the
`Account` request header.

| Path | Purpose |
| --- | --- |
| `/mailbox/subscribe`, `/mailbox/unsubscribe` | manage newsletter subscriptions (`mailbox`) |
| `/machine/filter` | the distinct GPU models, GPU counts and regions |
| `/machine/market` | machines on the market, filtered by `Gpu`, `GpuCount`, `Region`, `Status`, sorted by `OrderBy` |
| `/machine/mine` | machines owned by the `Account` header |
| `/order/mine` | the account's orders (`Direction`: `buy`, `sell` or either), newest first |
| `/order/all` | all orders, optionally of one `Status`, newest first |
| `/reward/total` | claimed and claimable periodic rewards of past periods |
| `/reward/claimable/list` | unclaimed machine rewards of past periods |
| `/reward/period/list` | past reward periods, newest first |
| `/reward/machine/list` | the machines rewarded in one past `Period` |
| `/log/add`, `/log/list` | order logs (`OrderUuid`, `Content`) |

`OrderBy` on `/machine/market` accepts `price`, `price DESC`, `score DESC`,
`tflops DESC` and `reliability`. When `Status` is not given, the listing leaves
out idle machines. Paged endpoints accept `Page`, which defaults to 1, and
`PageSize`, which defaults to 10 and is capped at 100. Reward periods are whole
days counted from 2024-02-27 00:00:00 UTC (`distriindex.pagination.current_period`).

Every response gets CORS headers. `OPTIONS` requests get an empty 204 reply.

A new subscription triggers a welcome e-mail sent through the configured SMTP
server. Port 465 uses SSL. Other ports use STARTTLS when the server offers it.

## Library use

```python
from distriindex.accounts import Machine
from distriindex.details import build_machine_model

machine = Machine.from_bytes(account_data)   # checks the 8-byte discriminator
row = build_machine_model(machine)           # a distriindex.models.Machine row
```

- `distriindex.borsh`: `Encoder`, `Decoder`, `PublicKey`, and base58 through
  `b58encode` and `b58decode`.
- `distriindex.accounts`: `Machine`, `Order`, `Reward`, `RewardMachine` and
  `Task`, each with `to_bytes()` and `from_bytes()`.
- `distriindex.events`: `MachineEvent`, `OrderEvent`, `TaskEvent` and `RewardEvent`.
- `distriindex.instructions`: `new_submit_task_instruction`, `SubmitTask`
  (`validate`, `build`, `describe`), `Instruction.data()`,
  `decode_instruction(accounts, data)` and `instruction_id_to_name`.
- `distriindex.indexer`: `find_program_address` derives program addresses.
  `Indexer(session_factory, program_id, fetch_account)` adds, updates and
  removes database rows from account data. `fetch_account` is a callable you
  supply: it takes an address and returns the raw data, or `None`.
- `distriindex.app.create_app(config, session_factory, mailer=None)` builds the
  Flask application.

## What this package does not do

- It has no Solana RPC or websocket client. It does not follow the chain by
  itself. You must supply the account data, both to `Indexer` and to its
  `fetch_all_*` methods.
- It has no token faucet endpoint. The `chain` settings for the faucet are read
  but not used.
- It does not use Redis. The `redis` section is read but not used.