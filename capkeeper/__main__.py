from capkeeper.local.supervisor_entry import entry

entry()
