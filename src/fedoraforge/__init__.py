"""FedoraForge — менеджер ядер, планировщиков sched_ext и пакетов для Fedora."""

from fedoraforge.config import VERSION as __version__
