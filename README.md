# apigenkit

Pieces around an OpenAPI code generator:

- `apigenkit.configuration`: the generator's settings (which targets to
  generate, compatibility switches, output options), read from and written
  back to the mappings that YAML configuration files hold, with defaults and
  validation.
- `apigenkit.extension`: strict readers for the `x-go-*` and related vendor
  extension values found in OpenAPI documents.
- `apigenkit.cli`: parsing of the generator's command-line flags, detection
  of old- and new-style configuration files, and merging of flags and file
  into one validated configuration.
- In-memory reference services: a pet store (`apigenkit.petstore`,
  `apigenkit.strict_petstore`), bearer-token checks (`apigenkit.auth`) and a
  small store of named things (`apigenkit.things`).

The only runtime dependency is PyYAML. The `test` extra adds pytest.

## Configuration

```python
from apigenkit.configuration import Configuration, ConfigurationError

cfg = Configuration.from_dict({
    "package": "api",
    "generate": {"chi-server": True, "models": True},
})
cfg = cfg.update_defaults()
cfg.validate()
print(cfg.to_dict())
```

`from_dict` rejects unknown keys and values of the wrong type with
`ConfigurationError`. `to_dict` leaves out empty fields. When no generation
target is set at all, `update_defaults()` returns a copy with the Echo
server, models and the embedded spec turned on. `validate()` raises
`ConfigurationError` when the package name is missing or when more than one
of the chi, Echo and gin servers is selected.

## Extension values

```python
from apigenkit.extension import ExtensionError, ext_type_name, ext_extra_tags

ext_type_name("uint64")                # "uint64"
ext_extra_tags({"tag1": "value1"})     # {"tag1": "value1"}
ext_type_name(12)                      # raises ExtensionError
```

The extension names themselves are available as constants such as
`EXT_PROP_GO_TYPE` (`"x-go-type"`) and `EXT_GO_NAME` (`"x-go-name"`).

## Command-line handling

```python
from apigenkit.cli import parse_args, resolve_configuration

flags = parse_args(["-package", "api", "-generate", "types,chi-server", "petstore.yaml"])
run = resolve_configuration(flags)
run.configuration   # a validated Configuration
run.output_file     # "" unless -o or the config file names one
```

- `parse_args` accepts flags with one or two dashes (`-o`, `-config`,
  `-package`, `-generate`, `-templates`, `-old-config-style`,
  `-output-config`, `-version`, `-help`/`-h`, and the deprecated
  `-include-tags`, `-exclude-tags`, `-import-mapping`, `-exclude-schemas`,
  `-response-type-suffix`, `-alias-types`, `-initialism-overrides`). Exactly
  one spec path is required unless help or version is asked for; otherwise
  `CliError` is raised.
- `detect_config_style` decides between the old flat configuration layout
  (`OldConfiguration`) and the current one: by `-old-config-style`, then by
  which layout the file parses as, then by whether a deprecated flag was set.
- `generation_targets` maps names such as `chi`, `server`, `gin`, `gorilla`,
  `strict-server`, `client`, `types` and `spec` to output kinds, and
  `skip-fmt`/`skip-prune` to output options; anything else raises `CliError`.
- `load_template_overrides` reads every file below a directory, keyed by its
  path relative to that directory.
- When no package name is given, `detect_package_name` derives one. If an
  output file is set it first runs `go list -f {{.Name}}` on the output's
  directory; failing that, it uses the spec file's base name in lower camel
  case (`petstore-expanded.yaml` gives `petstoreExpanded`).

## Pet store

```python
from apigenkit.petstore import NewPet, PetStore, PetNotFoundError

store = PetStore()
pet = store.add_pet(NewPet(name="Spot", tag="TagOfSpot"))   # id 1000
store.find_pets(tags=["TagOfSpot"])
store.delete_pet(pet.id)
store.find_pet_by_id(pet.id)   # raises PetNotFoundError
```

`PetStore` numbers new pets from 1000. `find_pets` filters by tag when tags
are given and stops once `limit` entries are collected. `handle(method,
path, query, body)` dispatches `GET`/`POST /pets` and `GET`/`DELETE
/pets/{id}` and returns a `Response` with a status and a JSON-ready body:
201 for a created pet, 204 for a deletion, 400 for a malformed body or id,
and 404 with the message `Could not find pet with ID <id>` for an unknown
pet.

`StrictPetStore` offers the same operations as typed handlers taking
`FindPetsRequest`, `AddPetRequest` or `PetIdRequest` and returning a
`JsonResponse`; adding a pet there answers 200.

## Bearer tokens and things

```python
from apigenkit.auth import authenticate, ClaimsInvalidError
from apigenkit.things import Thing, ThingServer

class Validator:
    def validate_jws(self, jws):
        return {"perms": ["things:w"]}

claims = authenticate(Validator(), "BearerAuth",
                      {"Authorization": "Bearer token"}, ["things:w"])

server = ThingServer()
server.add_thing(Thing(name="Thing 1"))   # ThingWithId(id=0, name="Thing 1")
server.list_things()
```

`authenticate` accepts only the `BearerAuth` scheme, takes the token from an
`Authorization: Bearer <token>` header, hands it to the validator and checks
that every required scope is among the token's `perms` claims. A missing
header raises `NoAuthHeaderError`, one without the `Bearer ` prefix
`InvalidAuthHeaderError`, and missing scopes `ClaimsInvalidError`; all are
`AuthError`s. Verifying token signatures is left to the validator you pass.

## What this package does not do

- It does not generate code and does not load or parse OpenAPI documents;
  it only prepares and checks the settings for such a run.
- It installs no command. `apigenkit.cli` provides the pieces a command
  needs, but there is no entry point that runs them.
- The reference services are plain in-memory objects. There is no HTTP
  server, no request validation against a specification, and no storage
  beyond the process.