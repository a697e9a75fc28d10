# File: kitegen/templates.py
"""
KiteGen - Source Templates
===========================
Template text for every per-entity and per-project file. Templates use
``__TOKEN__`` placeholders rendered by :mod:`kitegen.engine` (entity class,
components, routes) or by :func:`kitegen.relations.process_template`
(relation fragments).

The templates are kept identical to the standalone files they were
extracted from, including their ``// @ts-nocheck`` directives, which the
engine strips on render.
"""

from __future__ import annotations

import logging
from typing import Dict, List

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.templates")

# ---------------------------------------------------------------------------
# Entity class
# ---------------------------------------------------------------------------

ENTITY_CLASS_TEMPLATE: str = """\
// @ts-nocheck
__IMPORTS__

export class __CLASS_NAME__ {
   public data = $state<__SCHEMA_TYPE__>(__DEFAULT_DATA__)
   private store: DatabaseService
__RELATION_STATE_FIELDS__
   constructor(data?: __SCHEMA_TYPE__, store: DatabaseService = defaultStore) {
      this.store = store
      if (data) this.data = data
__CONSTRUCTOR_CALLS__   }

__RELATION_METHODS__   delete = () => {
      return this.db.del('__ENTITY_NAME__')(this.data.id)
   }

   get detail() {
      return withSave(DataSave, __CLASS_NAME__Detail, { __ENTITY_NAME__: this }, () => this.db.put('__ENTITY_NAME__')(this.snapshot))
   }

   get listItem() {
      return withProps(__CLASS_NAME__ListItem, { __ENTITY_NAME__: this })
   }

__RELATION_GETTERS__   get snapshot() {
      return $state.snapshot(this.data)
   }

   get db() {
      return this.store
   }

   static create(store: DatabaseService = defaultStore) {
      const __ENTITY_NAME__ = new __CLASS_NAME__(undefined, store)
      return __ENTITY_NAME__.db.put('__ENTITY_NAME__')(__ENTITY_NAME__.snapshot)
   }
}
"""

# Accessor getters per relation, keyed by catalog kind
RELATION_GETTER_TEMPLATES: Dict[str, str] = {
    "manyToOne": """\
   get select__TARGET__() {
      return withData(__TARGET__Select, '__TARGET_PLURAL__', () => this.db.all('__TARGET_LOWER__')) as any
   }

   get __RELATION_DISPLAY__() {
      return withInstance(__TARGET__ListItem, '__TARGET_LOWER__', () => this.db.get('__TARGET_LOWER__')(this.data.__FOREIGN_KEY__), __TARGET__) as any
   }""",
    "oneToMany": """\
   get __RELATION_NAME__() {
      return withProps(__TARGET__List, { __TARGET_PLURAL__: this.___RELATION_NAME__, remove: this.remove__TARGET__ }) as any
   }

   get select__RELATION_TITLE__() {
      return withData(__TARGET__Select, '__TARGET_PLURAL__', () => this.db.all('__TARGET_LOWER__')) as any
   }""",
}
RELATION_GETTER_TEMPLATES["manyToMany"] = RELATION_GETTER_TEMPLATES["oneToMany"]

# Relation pickers rendered inside the detail component
RELATION_SELECTOR_TEMPLATES: Dict[str, str] = {
    "manyToOne": (
        "<__SOURCE_LOWER__.select__TARGET__ "
        "callback={__SOURCE_LOWER__.update__TARGET__} />"
    ),
    "oneToMany": """\
<div>
   <__SOURCE_LOWER__.__RELATION_NAME__ /><br />
   Add __TARGET__: <__SOURCE_LOWER__.select__RELATION_TITLE__ callback={__SOURCE_LOWER__.add__TARGET__} />
</div>""",
}
RELATION_SELECTOR_TEMPLATES["manyToMany"] = RELATION_SELECTOR_TEMPLATES["oneToMany"]

# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

DETAIL_TEMPLATE: str = """\
<script lang="ts">
   // @ts-nocheck
   import { type __CLASS_NAME__ } from '$lib/generated/classes/__CLASS_NAME__.svelte.js'

   let { __ENTITY_NAME__ }: { __ENTITY_NAME__: __CLASS_NAME__ } = $props()
</script>

__FIELD_INPUTS__

__RELATION_SELECTORS__
"""

LIST_ITEM_TEMPLATE: str = """\
<script lang="ts">
   // @ts-nocheck
   import { type __CLASS_NAME__ } from '$lib/generated/classes/__CLASS_NAME__.svelte.js'

   let { __ENTITY_NAME__ }: { __ENTITY_NAME__: __CLASS_NAME__ } = $props()
</script>

<span>{__ENTITY_NAME__.data.__DISPLAY_FIELD__}</span>
"""

SELECT_TEMPLATE: str = """\
<script lang="ts">
   import { type __SCHEMA_TYPE__ } from '$lib/generated/data.js'

   type SelectEvent = Event & { currentTarget: EventTarget & HTMLSelectElement }

   let { __ENTITY_PLURAL__, callback }: { __ENTITY_PLURAL__: __SCHEMA_TYPE__[], callback: (id: string) => void } = $props()
</script>

<select onchange={(event: SelectEvent) => callback(event.currentTarget.value)}>
   <option selected value='' disabled>Select __ENTITY_DISPLAY_NAME__</option>
   {#each __ENTITY_PLURAL__ as __ENTITY_NAME__}
      <option value={__ENTITY_NAME__.id}>{__ENTITY_NAME__.__DISPLAY_FIELD__}</option>
   {/each}
</select>
"""

LIST_TEMPLATE: str = """\
<script lang="ts">
   import { type __SCHEMA_TYPE__ } from '$lib/generated/data.js'

   let { __ENTITY_PLURAL__, remove }: { __ENTITY_PLURAL__: __SCHEMA_TYPE__[], remove: (id: string) => void } = $props()
</script>

{#each __ENTITY_PLURAL__ as __ENTITY_NAME__}
   <span __STYLE_ATTRIBUTE__>
      {__ENTITY_NAME__.__DISPLAY_FIELD__}
      <button onclick={() => remove(__ENTITY_NAME__.id)}>&times;</button>
   </span>
{/each}
"""

DELETE_TEMPLATE: str = """\
<script lang="ts">
   // @ts-nocheck
   import { type __CLASS_NAME__ } from '$lib/generated/classes/__CLASS_NAME__.svelte.js'

   let { __ENTITY_NAME__ }: { __ENTITY_NAME__: __CLASS_NAME__ } = $props()

   function handleDelete() {
      if (confirm('Are you sure you want to delete this __ENTITY_DISPLAY_NAME__?')) {
         __ENTITY_NAME__.delete()
      }
   }
</script>

<button onclick={handleDelete} class="delete-button">
   Delete __ENTITY_DISPLAY_NAME__
</button>

<style>
   .delete-button {
      background-color: #dc3545;
      color: white;
      border: none;
      padding: 0.5rem 1rem;
      border-radius: 0.25rem;
      cursor: pointer;
   }

   .delete-button:hover {
      background-color: #c82333;
   }
</style>
"""

COMPONENT_TEMPLATES: Dict[str, str] = {
    "detail": DETAIL_TEMPLATE,
    "listItem": LIST_ITEM_TEMPLATE,
    "select": SELECT_TEMPLATE,
    "list": LIST_TEMPLATE,
    "delete": DELETE_TEMPLATE,
}

# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

TABLE_LIST_LOAD_TEMPLATE: str = """\
import type { PageLoad } from "./$types.js";
import { db } from '$lib/generated/db.js'
import { constructors } from "$lib/generated/data.js";
import type { TableNames } from "$lib/generated/tables.js";

// Type for valid table names that have constructors
type ValidTableName = keyof typeof constructors;

// Type guard to check if a string is a valid table name
function isValidTableName(tableName: string): tableName is ValidTableName {
   return tableName in constructors;
}

// Type guard to check if table exists in database
function tableExistsInDb(tableName: string): tableName is keyof TableNames {
   return db.tables.some(table => table.name === tableName);
}

export const load: PageLoad = async ({ params }) => {
   const tableName = params.table;

   if (tableExistsInDb(tableName) && isValidTableName(tableName)) {
      const result = await db.all(tableName) as any[];

      const Constructor = constructors[tableName];

      return {
         entries: result.map(data => new Constructor(data, db)),
         constructor: Constructor,
         table: params.table
      };
   } else {
      return {};
   }
}
"""

TABLE_LIST_PAGE_TEMPLATE: str = """\
<script lang="ts">
   import { invalidateAll } from "$app/navigation";
   import { db } from '$lib/generated/db.js'

   type ValidClass = {
      create: Function
   }

   type Data = {
      entries: any[];
      constructor: ValidClass;
      table: string;
   };

   let { data }: { data: Data } = $props();

   async function add() {
      await data.constructor.create(db);
      invalidateAll();
   }
</script>

<h2>{data.table}</h2>
<button onclick={add}>add</button>
<ul>
   {#each data.entries as el}
      <li><a href={`/${data.table}/${el.data.id}`}><el.listItem /></a></li>
   {/each}
</ul>
"""

DETAIL_LOAD_TEMPLATE: str = """\
import type { PageLoad } from "./$types.js";
import { db } from '$lib/generated/db.js'
import { constructors } from "$lib/generated/data.js";
import type { TableNames } from "$lib/generated/tables.js";

type ValidTableName = keyof typeof constructors;

function isValidTableName(tableName: string): tableName is ValidTableName {
   return tableName in constructors;
}

function tableExistsInDb(tableName: string): tableName is keyof TableNames {
   return db.tables.some(table => table.name === tableName);
}

export const load: PageLoad = async ({ params }) => {
   const tableName = params.table;

   if (tableExistsInDb(tableName) && isValidTableName(tableName)) {
      const data = await db.get(params.table as keyof TableNames)(params.id)

      const Constructor = constructors[tableName];

      return {
         // @ts-ignore
         [tableName]: new Constructor(data, db)
      };
   } else {
      return {};
   }
}
"""

DETAIL_PAGE_TEMPLATE: str = """\
<script lang="ts">
   let { data }: { data: Record<string, Record<string, any>>} = $props()
</script>

{#each Object.values(data) as obj}
   <obj.detail />
{/each}
"""

LAYOUT_LOAD_TEMPLATE: str = """\
export const ssr = false
"""

LAYOUT_PAGE_TEMPLATE: str = """\
<script lang="ts">
   import { constructors } from '$lib/generated/data.js'

   let { children } = $props()
</script>

<nav>
   <ul>
      <li><a href="/">Home</a></li>
      {#each Object.keys(constructors) as name}
         <li><a href={`/${name}`}>{name}</a></li>
      {/each}
   </ul>
</nav>
{@render children()}
"""

# Route templates by path relative to the output directory
ROUTE_TEMPLATES: Dict[str, str] = {
    "src/routes/[table]/+page.ts": TABLE_LIST_LOAD_TEMPLATE,
    "src/routes/[table]/+page.svelte": TABLE_LIST_PAGE_TEMPLATE,
    "src/routes/[table]/[id]/+page.ts": DETAIL_LOAD_TEMPLATE,
    "src/routes/[table]/[id]/+page.svelte": DETAIL_PAGE_TEMPLATE,
    "src/routes/+layout.ts": LAYOUT_LOAD_TEMPLATE,
    "src/routes/+layout.svelte": LAYOUT_PAGE_TEMPLATE,
}

# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ENTITY_CLASS_TEMPLATE",
    "RELATION_GETTER_TEMPLATES",
    "RELATION_SELECTOR_TEMPLATES",
    "DETAIL_TEMPLATE",
    "LIST_ITEM_TEMPLATE",
    "SELECT_TEMPLATE",
    "LIST_TEMPLATE",
    "DELETE_TEMPLATE",
    "COMPONENT_TEMPLATES",
    "ROUTE_TEMPLATES",
]

logger.debug("kitegen.templates loaded (%d public symbols).", len(__all__))
