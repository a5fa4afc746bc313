"""
Serviço de agendamento de tarefas usando APScheduler.

Gerencia jobs periódicos como:
- Rotação do token raffle quando o ciclo de 24 horas termina
- Desativação de convites expirados
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.errors import StorageError
from app.db.session import SessionLocal
from app.services.audit import AuditEmitter
from app.services.invite_tokens import draw_raffle_token, expire_stale_tokens
from app.services.token_store import InviteTokenStore

logger = logging.getLogger("ingresso.scheduler")

# Scheduler global
scheduler: AsyncIOScheduler | None = None


async def rotate_raffle_token() -> None:
    """Job agendado que garante um token raffle para o ciclo vigente."""
    async with SessionLocal() as db:
        try:
            token = await draw_raffle_token(InviteTokenStore(db), AuditEmitter(SessionLocal))
        except StorageError:
            logger.exception("Erro ao rotacionar token raffle")
            return

    if token:
        logger.info("Token raffle do ciclo disponível")
    else:
        logger.info("Token raffle do ciclo já utilizado; aguardando fim do ciclo")


async def expire_invite_tokens() -> None:
    """Job agendado que desativa convites cuja data de expiração passou."""
    async with SessionLocal() as db:
        try:
            count = await expire_stale_tokens(InviteTokenStore(db))
        except StorageError:
            logger.exception("Erro ao desativar convites expirados")
            return

    logger.info(f"Convites expirados desativados: {count}")


def start_scheduler():
    """
    Inicia o scheduler de jobs periódicos.

    Configuração padrão:
    - Rotação do raffle: a cada hora
    - Expiração de convites: a cada 15 minutos
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler já está rodando")
        return

    logger.info("Iniciando scheduler de jobs periódicos")

    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        rotate_raffle_token,
        trigger=CronTrigger(minute=0),
        id="rotate_raffle_token",
        name="Rotação do token raffle",
        replace_existing=True,
        misfire_grace_time=300,
    )
    scheduler.add_job(
        expire_invite_tokens,
        trigger=CronTrigger(minute="*/15"),
        id="expire_invite_tokens",
        name="Desativação de convites expirados",
        replace_existing=True,
        misfire_grace_time=300,
    )

    scheduler.start()
    logger.info("Scheduler iniciado com sucesso")
    logger.info(f"Jobs agendados: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler():
    """Para o scheduler de jobs."""
    global scheduler

    if scheduler is None:
        logger.warning("Scheduler não está rodando")
        return

    logger.info("Parando scheduler")
    scheduler.shutdown(wait=True)
    scheduler = None
    logger.info("Scheduler parado com sucesso")


def get_scheduler_status() -> dict:
    """
    Retorna status do scheduler e jobs agendados.

    Returns:
        dict: {
            "running": bool,
            "jobs": [{
                "id": str,
                "name": str,
                "next_run_time": str | None,
                "trigger": str
            }]
        }
    """
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        })

    return {
        "running": scheduler.running,
        "jobs": jobs,
    }
